"""
Per-client request limits.

Every extraction, complaint draft and transcription is a paid call to a
hosted model, so those routes get the tightest budget. Limits are read
from settings so deployments can tune them without a code change.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import settings

PROXY_HEADERS = ("X-Forwarded-For", "X-Real-IP")


def get_real_client_ip(request: Request) -> str:
    """Client address, preferring the proxy-supplied one."""
    for header in PROXY_HEADERS:
        value = request.headers.get(header)
        if value:
            # First hop is the original client
            return value.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=get_real_client_ip, enabled=settings.RATE_LIMIT_ENABLED)

RATE_LIMITS = {
    "analyze": settings.RATE_LIMIT_MODEL_CALLS,
    "complaint": settings.RATE_LIMIT_MODEL_CALLS,
    "transcribe": settings.RATE_LIMIT_MODEL_CALLS,
    "audit": settings.RATE_LIMIT_AUDIT,
    "default": settings.RATE_LIMIT_DEFAULT,
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer with the same error shape the bill endpoints use."""
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": {
                "error": "Too many requests",
                "details": f"Limit of {exc.detail} reached for {request.url.path}",
            }
        },
    )
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        response.headers["Retry-After"] = str(retry_after)
    return response
