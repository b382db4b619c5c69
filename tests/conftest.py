import pytest
from fastapi.testclient import TestClient

from auth.utils import create_access_token, hash_password
from services.orchestrator import InterviewOrchestrator
from services.rate_limiter import limiter
from services.sheets_exporter import SheetsExporter
from services.storage import MemoryStorage
from tests.fakes import FakeProvider, RecordingExporter


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provider_factory(fake_provider):
    calls = []

    def factory(kind, api_key=None):
        calls.append((kind, api_key))
        return fake_provider

    factory.calls = calls
    return factory


@pytest.fixture
def storage():
    store = MemoryStorage()
    store.seed()
    return store


@pytest.fixture
def user(storage):
    return storage.create_user("student@example.com", hash_password("secret123"), "Sam Student").public()


@pytest.fixture
def other_user(storage):
    return storage.create_user("other@example.com", hash_password("secret123"), "Olive Other").public()


@pytest.fixture
def admin_user(storage):
    return storage.create_user("admin@example.com", hash_password("secret123"), "Ada Admin", role="admin").public()


@pytest.fixture
def exporter():
    return RecordingExporter()


@pytest.fixture
def orchestrator(storage, exporter, provider_factory):
    return InterviewOrchestrator(storage, exporter=exporter, provider_factory=provider_factory)


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def app(storage, provider_factory):
    from main import create_app

    limiter.enabled = False
    application = create_app(storage=storage, exporter=SheetsExporter(), provider_factory=provider_factory)
    yield application
    limiter.enabled = True


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
