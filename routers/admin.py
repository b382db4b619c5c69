from fastapi import APIRouter, Depends
from typing import List

from models.auth import User
from models.interview import Interview
from auth.dependencies import get_admin_user
from routers.deps import get_storage
from services.storage import Storage

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=List[User])
async def list_users(
    admin: User = Depends(get_admin_user),
    storage: Storage = Depends(get_storage)
):
    return [u.public() for u in storage.list_users()]


@router.get("/interviews", response_model=List[Interview])
async def list_all_interviews(
    admin: User = Depends(get_admin_user),
    storage: Storage = Depends(get_storage)
):
    """Every interview across all users, newest first"""
    return storage.list_interviews()
