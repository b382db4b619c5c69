from fastapi import APIRouter, HTTPException, Depends
from typing import List

from models.auth import User
from models.subject import Subject, SubjectCreate, SubjectAnalytics
from auth.dependencies import get_current_user
from routers.deps import get_storage
from services.storage import Storage

router = APIRouter(prefix="/api/subjects", tags=["Subjects"])


def _get_subject_or_404(storage: Storage, subject_id: int) -> Subject:
    subject = storage.get_subject(subject_id)
    if subject is None:
        raise HTTPException(status_code=404, detail="Subject not found")
    return subject


@router.get("", response_model=List[Subject])
async def list_subjects(
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return storage.list_subjects()


@router.get("/presets", response_model=List[Subject])
async def list_preset_subjects(
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return storage.list_preset_subjects()


@router.post("", response_model=Subject, status_code=201)
async def create_subject(
    subject: SubjectCreate,
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """Create a custom subject and pin it for the current user"""
    name = subject.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Subject name must not be blank")

    new_subject = storage.create_subject(name, subject.icon, is_preset=False)
    storage.add_user_subject(current_user.id, new_subject.id)
    return new_subject


@router.get("/mine", response_model=List[Subject])
async def list_my_subjects(
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    return storage.list_user_subjects(current_user.id)


@router.post("/{subject_id}/pin", response_model=dict)
async def pin_subject(
    subject_id: int,
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    _get_subject_or_404(storage, subject_id)
    storage.add_user_subject(current_user.id, subject_id)
    return {"message": "Subject added"}


@router.delete("/{subject_id}/pin", response_model=dict)
async def unpin_subject(
    subject_id: int,
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    storage.remove_user_subject(current_user.id, subject_id)
    return {"message": "Subject removed"}


@router.get("/{subject_id}/interviews", response_model=SubjectAnalytics)
async def get_subject_interviews(
    subject_id: int,
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Get the current user's interviews for a subject, with the average
    score of the completed ones
    """
    subject = _get_subject_or_404(storage, subject_id)
    interviews = storage.list_interviews_by_subject(current_user.id, subject_id)

    scores = [i.overall_score for i in interviews if i.status == "completed" and i.overall_score is not None]
    average = round(sum(scores) / len(scores), 1) if scores else None

    return SubjectAnalytics(
        subject=subject,
        interviews=interviews,
        completed_count=len(scores),
        average_score=average
    )
