import logging

from fastapi import APIRouter, HTTPException, Depends, status
from models.auth import UserCreate, UserLogin, User
from auth.utils import hash_password, verify_password, create_access_token
from auth.dependencies import get_current_user
from routers.deps import get_storage
from services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _token_response(user: User) -> dict:
    return {
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": user.model_dump(mode="json")
    }


@router.post("/register", response_model=dict, status_code=201)
async def register(user: UserCreate, storage: Storage = Depends(get_storage)):
    """Register a new student account"""
    try:
        if storage.get_user_by_email(user.email):
            raise HTTPException(status_code=400, detail="Email already registered")

        hashed_password = hash_password(user.password)
        new_user = storage.create_user(user.email, hashed_password, user.full_name)
        logger.info(f"Registered user {new_user.id}")

        return {"message": "User registered successfully", **_token_response(new_user.public())}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/login", response_model=dict)
async def login(credentials: UserLogin, storage: Storage = Depends(get_storage)):
    """Login and get access token"""
    try:
        user = storage.get_user_by_email(credentials.email)

        if not user or not verify_password(credentials.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
            )

        return _token_response(user.public())

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info"""
    return current_user
