from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
import bcrypt
from core.config import JWT_SECRET_KEY, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_HOURS
from models.auth import TokenData, User


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Bearer token for `user`; the role rides along so a demoted admin's old tokens stop working."""
    issued_at = datetime.now(timezone.utc)
    payload = {
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)),
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(
            token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM], options={"require": ["exp", "user_id"]}
        )
    except jwt.InvalidTokenError:
        return None
    return TokenData(user_id=payload["user_id"], email=payload.get("email"), role=payload.get("role"))
