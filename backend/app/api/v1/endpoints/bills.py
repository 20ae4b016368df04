"""
Bill Audit API Endpoints.

Upload or post a bill, get it audited against tier ceilings and the
learned rate card. Every audited bill is fed back into the rate card
after the response is sent.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Query, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from ml.audit.audit_engine import AuditResult
from ml.audit.exceptions import InputMalformedError, StorageUnavailableError
from ml.audit.rate_card import RateCardStore
from ml.audit.tier_table import CityTier
from ml.extraction.bill_extractor import ExtractionError, is_supported_mime_type
from ml.llm.llm_wrapper import LLMProvider

from app.api.deps import get_audit_service, get_rate_card_store, get_vision_provider
from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    ExtractionFailedException,
    MalformedBillException,
    PayloadTooLargeException,
    ServiceNotConfiguredException,
)
from app.core.rate_limiter import limiter, RATE_LIMITS
from app.schemas.bill import (
    AuditResponse,
    CityTierEnum,
    HistoryResponse,
    LedgerEntryResponse,
    RateCardResponse,
)
from app.services.audit_service import BillAuditService

logger = logging.getLogger(__name__)

router = APIRouter()


def _tier_override(tier: Optional[CityTierEnum]) -> Optional[CityTier]:
    return CityTier(tier.value) if tier is not None else None


def _respond_and_learn(
    result: AuditResult,
    service: BillAuditService,
    background_tasks: BackgroundTasks,
) -> dict:
    background_tasks.add_task(service.learn, result)
    return result.to_dict()


# ============================================
# Endpoints
# ============================================

@router.post("/analyze", response_model=AuditResponse)
@limiter.limit(RATE_LIMITS["analyze"])
async def analyze_bill(
    request: Request,
    background_tasks: BackgroundTasks,
    bill: UploadFile = File(..., description="Bill image or PDF"),
    tier: Optional[CityTierEnum] = Query(None, description="Force a pricing tier"),
    service: BillAuditService = Depends(get_audit_service),
    provider: LLMProvider = Depends(get_vision_provider),
):
    """
    Analyze an uploaded hospital bill.

    1. Vision model reads the bill into structured line items
    2. Each item is compared with its standard price
    3. Charged prices are learned into the rate card (in the background)
    """
    if not provider.is_available():
        raise ServiceNotConfiguredException("OPENAI_API_KEY not configured")

    if not is_supported_mime_type(bill.content_type):
        raise BadRequestException(f"Unsupported file type: {bill.content_type}")

    content = await bill.read()
    if not content:
        raise BadRequestException("No file uploaded")

    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise PayloadTooLargeException(
            f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE_MB}MB"
        )

    logger.info(f"Analyzing bill {bill.filename} ({bill.content_type}, {len(content)} bytes)")

    try:
        result = await run_in_threadpool(
            service.analyze_upload,
            content,
            bill.content_type,
            provider,
            bill.filename or "bill",
            _tier_override(tier),
        )
    except ExtractionError as e:
        logger.error(f"Extraction failed for {bill.filename}: {e}")
        raise ExtractionFailedException(str(e))
    except InputMalformedError as e:
        raise MalformedBillException(str(e), field=e.field)

    logger.info(
        f"Audited {bill.filename}: {len(result.flagged_items)} of {len(result.line_items)} "
        f"items flagged, potential savings {result.potential_savings}"
    )
    return _respond_and_learn(result, service, background_tasks)


@router.post("/audit", response_model=AuditResponse)
@limiter.limit(RATE_LIMITS["audit"])
async def audit_raw_bill(
    request: Request,
    background_tasks: BackgroundTasks,
    raw_bill: dict = Body(..., description="Bill as produced by extraction"),
    tier: Optional[CityTierEnum] = Query(None, description="Force a pricing tier"),
    service: BillAuditService = Depends(get_audit_service),
):
    """Audit an already-extracted bill (no vision model call)."""
    try:
        result = await run_in_threadpool(
            service.audit, raw_bill, tier_override=_tier_override(tier), source="json"
        )
    except InputMalformedError as e:
        raise MalformedBillException(str(e), field=e.field)

    return _respond_and_learn(result, service, background_tasks)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    limit: int = Query(10, ge=1, le=100),
    store: RateCardStore = Depends(get_rate_card_store),
):
    """Most recently audited bills, newest first."""
    try:
        bills = await run_in_threadpool(store.recent_bills, limit)
    except StorageUnavailableError as e:
        logger.error(f"Failed to read bill history: {e}")
        raise ServiceNotConfiguredException("Bill history unavailable")

    return {"bills": bills, "count": len(bills)}


@router.get("/rate-card", response_model=RateCardResponse)
async def get_rate_card(store: RateCardStore = Depends(get_rate_card_store)):
    """Learned prices per service."""
    try:
        rate_card = await run_in_threadpool(store.snapshot)
    except StorageUnavailableError as e:
        logger.error(f"Failed to read rate card: {e}")
        raise ServiceNotConfiguredException("Rate card unavailable")

    services = [
        LedgerEntryResponse(
            service=key,
            average_price=round(entry.average_price, 2),
            observation_count=len(entry.observations),
            last_updated=entry.last_updated,
            prices=[obs.to_dict() for obs in entry.observations],
        )
        for key, entry in sorted(rate_card.items())
    ]
    return RateCardResponse(services=services, total_services=len(services))


@router.get("/health")
async def api_health():
    """API health check."""
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "vision_configured": bool(settings.OPENAI_API_KEY),
        "drafting_configured": bool(settings.GROQ_API_KEY),
    }
