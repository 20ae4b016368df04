"""
BillBiopsy API.

Serves bill audits, complaint drafting and voice transcription under
settings.API_PREFIX, plus /health and /metrics at the root.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.api.v1.router import api_router
from app.core.metrics import router as metrics_router, set_app_info
from app.core.rate_limiter import limiter, rate_limit_exceeded_handler
from app.core.sentry import init_sentry
from app.middleware.metrics_middleware import MetricsMiddleware

APP_VERSION = "1.0.0"

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT, release=APP_VERSION)
set_app_info(APP_VERSION, settings.ENVIRONMENT)

app = FastAPI(
    title=settings.APP_NAME,
    description="Adaptive hospital bill auditor with learned price benchmarks",
    version=APP_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Added last so CORS wraps metrics; preflights are not counted
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(metrics_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness probe; see {API_PREFIX}/health for provider configuration."""
    return {"status": "healthy"}


logger.info(
    f"{settings.APP_NAME} {APP_VERSION} ready "
    f"(environment: {settings.ENVIRONMENT}, rate card: {settings.HISTORY_FILE})"
)
