from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., min_length=1, alias="fullName")
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: Optional[int] = None
    email: Optional[str] = None
    role: Optional[str] = None


class User(BaseModel):
    id: int
    email: str
    full_name: str
    role: str = "student"
    created_at: Optional[datetime] = None


class UserRecord(User):
    """User row including the bcrypt hash; never returned over HTTP."""
    password_hash: str

    def public(self) -> User:
        return User(**self.model_dump(exclude={"password_hash"}))
