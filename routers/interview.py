from fastapi import APIRouter, Depends, Request
from typing import List, Optional

from models.auth import User
from models.interview import Interview, Message, InterviewCreate, AnswerSubmit, CompleteRequest, AnswerResult
from auth.dependencies import get_current_user
from routers.deps import get_orchestrator, get_storage
from services.orchestrator import InterviewOrchestrator
from services.rate_limiter import COMPLETE_INTERVIEW_LIMIT, START_INTERVIEW_LIMIT, SUBMIT_ANSWER_LIMIT, limiter
from services.storage import Storage

router = APIRouter(prefix="/api/interviews", tags=["Interview"])

# Endpoints that call a provider are sync and run in the threadpool


@router.post("", response_model=Interview, status_code=201)
@limiter.limit(START_INTERVIEW_LIMIT)
def create_interview(
    request: Request,
    interview_request: InterviewCreate,
    current_user: User = Depends(get_current_user),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator)
):
    """
    Start a new interview session and generate the opening question
    """
    return orchestrator.start_interview(current_user, interview_request)


@router.get("/my", response_model=List[Interview])
async def get_my_interviews(
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Get all interview sessions for the current user, newest first
    """
    return storage.list_interviews_by_user(current_user.id)


@router.get("/{interview_id}", response_model=Interview)
async def get_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator)
):
    return orchestrator.get_interview(current_user, interview_id)


@router.get("/{interview_id}/messages", response_model=List[Message])
async def get_interview_messages(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator)
):
    """
    Get the transcript in creation order
    """
    return orchestrator.get_messages(current_user, interview_id)


@router.post("/{interview_id}/messages", response_model=AnswerResult)
@limiter.limit(SUBMIT_ANSWER_LIMIT)
def submit_interview_answer(
    request: Request,
    interview_id: int,
    answer: AnswerSubmit,
    current_user: User = Depends(get_current_user),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator)
):
    """
    Submit an answer, get feedback on it and the next question
    """
    return orchestrator.submit_answer(current_user, interview_id, answer.content, answer.api_key)


@router.post("/{interview_id}/complete", response_model=Interview)
@limiter.limit(COMPLETE_INTERVIEW_LIMIT)
def complete_interview(
    request: Request,
    interview_id: int,
    complete_request: Optional[CompleteRequest] = None,
    current_user: User = Depends(get_current_user),
    orchestrator: InterviewOrchestrator = Depends(get_orchestrator)
):
    """
    Finish the interview and generate the overall summary
    """
    api_key = complete_request.api_key if complete_request else None
    return orchestrator.complete_interview(current_user, interview_id, api_key)
