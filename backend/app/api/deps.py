"""
API dependencies for dependency injection.

Provides the shared rate card store, the audit service and the hosted
model clients. Tests swap any of these via ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from fastapi import Depends

from ml.audit.rate_card import JsonHistoryStore, RateCardStore
from ml.llm.llm_wrapper import GroqProvider, LLMProvider, OpenAIProvider, get_drafting_provider

from app.config import settings
from app.services.audit_service import BillAuditService

logger = logging.getLogger(__name__)


@lru_cache
def get_rate_card_store() -> RateCardStore:
    """
    Get the process-wide rate card store.

    One instance per process, so every request shares its write lock.
    """
    logger.info(f"Using rate card document at {settings.HISTORY_FILE}")
    return JsonHistoryStore(
        settings.HISTORY_FILE,
        max_prices_per_service=settings.MAX_PRICES_PER_SERVICE,
        max_history_bills=settings.MAX_HISTORY_BILLS,
    )


def get_audit_service(
    store: RateCardStore = Depends(get_rate_card_store),
) -> BillAuditService:
    return BillAuditService(store, overcharge_multiplier=settings.OVERCHARGE_MULTIPLIER)


def get_vision_provider() -> LLMProvider:
    """Get the vision model used to read uploaded bills."""
    return OpenAIProvider(
        api_key=settings.OPENAI_API_KEY,
        model=settings.EXTRACTION_MODEL,
        fallback_model=settings.EXTRACTION_FALLBACK_MODEL,
    )


def get_complaint_provider() -> LLMProvider:
    """Get the model used to draft complaint letters."""
    if settings.GROQ_API_KEY:
        return GroqProvider(
            api_key=settings.GROQ_API_KEY,
            model=settings.COMPLAINT_MODEL,
            base_url=settings.GROQ_BASE_URL,
            temperature=0.3,
            max_tokens=1500,
        )
    return get_drafting_provider()


def get_transcription_client():
    """
    Get the OpenAI-compatible client for Whisper transcription.

    Returns None when GROQ_API_KEY is not configured.
    """
    if not settings.GROQ_API_KEY:
        return None

    from openai import OpenAI
    return OpenAI(api_key=settings.GROQ_API_KEY, base_url=settings.GROQ_BASE_URL)
