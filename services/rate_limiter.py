import logging

import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core import config

logger = logging.getLogger(__name__)


def resolve_storage_uri(redis_url: str) -> str:
    """Share counters through Redis when it answers a ping, else keep them per process."""
    try:
        redis.from_url(redis_url, socket_connect_timeout=2).ping()
    except (redis.RedisError, ValueError) as e:
        logger.warning(f"Redis unavailable for rate limiting ({e}), counting in memory")
        return "memory://"
    return redis_url


def get_identifier(request: Request) -> str:
    """
    Rate limit key: the authenticated student when known, otherwise the
    first forwarded address, otherwise the socket peer.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request) or 'unknown'}"


STORAGE_URI = resolve_storage_uri(config.REDIS_URL)

limiter = Limiter(
    key_func=get_identifier,
    storage_uri=STORAGE_URI,
    strategy="fixed-window"
)

START_INTERVIEW_LIMIT = config.RATE_LIMIT_START_INTERVIEW
SUBMIT_ANSWER_LIMIT = config.RATE_LIMIT_SUBMIT_ANSWER
COMPLETE_INTERVIEW_LIMIT = config.RATE_LIMIT_COMPLETE_INTERVIEW


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 that the browser can read: CORS headers are added for allowed origins."""
    logger.warning(f"Rate limit exceeded for {get_identifier(request)} on {request.url.path}")

    headers = {}
    origin = request.headers.get("origin", "")
    if origin in config.ALLOWED_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"

    return JSONResponse(
        status_code=429,
        content={
            "message": f"Too many requests: limit is {exc.detail}. Please wait and try again.",
            "detail": str(exc.detail),
        },
        headers=headers
    )
