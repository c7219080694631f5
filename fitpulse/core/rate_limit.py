import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() not in {"0", "false", "no"}
AI_RATE_LIMIT = os.getenv("RATE_LIMIT_AI", "20 per 15 minutes")
CREATE_RATE_LIMIT = os.getenv("RATE_LIMIT_CREATE", "30 per 5 minutes")

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    _ = request
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many requests, please try again later ({exc.detail})."},
    )
