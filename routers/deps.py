from fastapi import Request

from services.orchestrator import InterviewOrchestrator
from services.storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_orchestrator(request: Request) -> InterviewOrchestrator:
    return request.app.state.orchestrator
