from datetime import timedelta

import pytest
import requests

from models.auth import User
from models.interview import Interview, InterviewStats, SummaryData
from services.sheets_exporter import HEADER_ROW, SPREADSHEET_SETTING_KEY, SheetsExporter, build_interview_stats
from services.storage import utcnow


class FakeSheetsClient:

    def __init__(self, failures=0, header=None, error=None):
        self.failures = failures
        self.header = header or []
        self.error = error
        self.rows = []
        self.updates = []

    def first_sheet_title(self, spreadsheet_id):
        if self.error is not None:
            raise self.error
        return "Stats"

    def get_values(self, spreadsheet_id, cell_range):
        return self.header

    def update_values(self, spreadsheet_id, cell_range, values):
        self.updates.append((cell_range, values))

    def append_row(self, spreadsheet_id, cell_range, row):
        if self.failures:
            self.failures -= 1
            raise requests.ConnectionError("sheets unavailable")
        self.rows.append((spreadsheet_id, cell_range, row))


def _stats(interview_id=1):
    return InterviewStats(
        interview_id=interview_id,
        student_name="Sam Student",
        student_email="student@example.com",
        project_title="Shop API",
        start_time="2026-01-01T10:00:00",
        end_time="2026-01-01T10:25:00",
        duration_minutes=25,
        overall_score=82,
        response_count=4,
        strengths="Architecture",
        weaknesses="Testing",
        revision_topics="Caching",
    )


def _exporter(client, **kwargs):
    sleeps = []
    options = dict(spreadsheet_id="sheet-123", cell_range="Sheet1!A:L", max_retries=3, retry_delay=2,
                   init_timeout=0.01, sleep=sleeps.append)
    options.update(kwargs)
    exporter = SheetsExporter(client=client, **options)
    return exporter, sleeps


class TestExport:

    def test_retries_with_linear_backoff(self):
        client = FakeSheetsClient(failures=2)
        exporter, sleeps = _exporter(client)
        exporter.initialize()

        assert exporter.export(_stats()) is True
        assert sleeps == [2, 4]
        assert client.rows == [("sheet-123", "Sheet1!A:L", _stats().as_row())]

    def test_gives_up_without_raising(self):
        client = FakeSheetsClient(failures=5)
        exporter, sleeps = _exporter(client)
        exporter.initialize()

        assert exporter.export(_stats()) is False
        assert sleeps == [2, 4]
        assert client.rows == []

    def test_drops_record_when_never_ready(self):
        client = FakeSheetsClient()
        exporter, sleeps = _exporter(client)

        assert exporter.export(_stats()) is False
        assert client.rows == []
        assert sleeps == []

    def test_disabled_exporter_ignores_records(self):
        exporter = SheetsExporter()
        assert exporter.enabled is False
        exporter.enqueue(_stats())
        exporter.start()
        exporter.stop()


class TestInitialize:

    def test_writes_header_when_missing(self):
        client = FakeSheetsClient()
        exporter, _ = _exporter(client)

        exporter.initialize()

        assert client.updates == [("Stats!A1:L1", [HEADER_ROW])]
        assert exporter._ready.is_set()

    def test_keeps_existing_header(self):
        client = FakeSheetsClient(header=[HEADER_ROW])
        exporter, _ = _exporter(client)

        exporter.initialize()

        assert client.updates == []
        assert exporter._ready.is_set()

    def test_spreadsheet_id_from_stored_setting(self, storage):
        storage.set_setting(SPREADSHEET_SETTING_KEY, "stored-sheet")
        exporter, _ = _exporter(FakeSheetsClient(), spreadsheet_id=None, storage=storage)

        exporter.initialize()

        assert exporter.spreadsheet_id == "stored-sheet"
        assert exporter._ready.is_set()

    def test_configured_spreadsheet_id_is_stored(self, storage):
        exporter, _ = _exporter(FakeSheetsClient(), storage=storage)

        exporter.initialize()

        assert storage.get_setting(SPREADSHEET_SETTING_KEY) == "sheet-123"

        restarted, _ = _exporter(FakeSheetsClient(header=[HEADER_ROW]), spreadsheet_id=None, storage=storage)
        restarted.initialize()
        assert restarted.spreadsheet_id == "sheet-123"
        assert restarted._ready.is_set()

    def test_no_spreadsheet_id(self, storage):
        exporter, _ = _exporter(FakeSheetsClient(), spreadsheet_id=None, storage=storage)
        exporter.initialize()
        assert not exporter._ready.is_set()

    @pytest.mark.parametrize("status", [403, 404, 500])
    def test_http_errors_are_logged(self, status):
        response = requests.Response()
        response.status_code = status
        client = FakeSheetsClient(error=requests.HTTPError(response=response))
        exporter, _ = _exporter(client)

        exporter.initialize()

        assert not exporter._ready.is_set()


def test_worker_appends_queued_records():
    client = FakeSheetsClient()
    exporter, _ = _exporter(client, init_timeout=5)

    exporter.start()
    exporter.enqueue(_stats(1))
    exporter.enqueue(_stats(2))
    exporter.join()
    exporter.stop()

    assert client.updates == [("Stats!A1:L1", [HEADER_ROW])]
    assert [row[2][0] for row in client.rows] == [1, 2]


def test_build_interview_stats():
    started = utcnow()
    interview = Interview(
        id=7,
        user_id=3,
        title="Shop API",
        description="store",
        status="completed",
        overall_score=64,
        summary=SummaryData(
            overall_score=64,
            strengths=["Design", "Clarity"],
            weaknesses=["Tests"],
            revision_topics=[],
            response_count=5,
        ),
        created_at=started,
        completed_at=started + timedelta(minutes=12, seconds=40),
    )
    user = User(id=3, email="student@example.com", full_name="Sam Student")

    stats = build_interview_stats(interview, user)

    assert stats.interview_id == 7
    assert stats.student_name == "Sam Student"
    assert stats.duration_minutes == 13
    assert stats.overall_score == 64
    assert stats.response_count == 5
    assert stats.strengths == "Design; Clarity"
    assert stats.weaknesses == "Tests"
    assert stats.revision_topics == ""
    assert stats.start_time == started.isoformat()
    assert len(stats.as_row()) == len(HEADER_ROW)
