"""
Audit module for hospital bill analysis.

Provides the adaptive pricing engine:
- Tier table and city classifier for static fallback prices
- Rate card store that learns prices from audited bills
- Standard price resolver, audit engine and learning feedback loop
"""

from ml.audit.audit_engine import (
    audit_bill,
    normalize_bill,
    get_audit_summary,
    AuditResult,
    AuditedLineItem,
    NormalizedBill,
    OVERCHARGE_MULTIPLIER,
)
from ml.audit.city_classifier import classify_city
from ml.audit.exceptions import AuditError, InputMalformedError, StorageUnavailableError
from ml.audit.feedback import learn_from_bill, LearningReport
from ml.audit.price_resolver import resolve_standard_price, match_category
from ml.audit.rate_card import (
    normalize_service,
    RateCardStore,
    InMemoryRateCardStore,
    JsonHistoryStore,
    LedgerEntry,
    PriceObservation,
)
from ml.audit.tier_table import CityTier, ServiceCategory, ceiling_for, get_tier_label, get_tier_rates

__all__ = [
    # Audit
    "audit_bill",
    "normalize_bill",
    "get_audit_summary",
    "AuditResult",
    "AuditedLineItem",
    "NormalizedBill",
    "OVERCHARGE_MULTIPLIER",
    # Pricing
    "classify_city",
    "resolve_standard_price",
    "match_category",
    "CityTier",
    "ServiceCategory",
    "ceiling_for",
    "get_tier_label",
    "get_tier_rates",
    # Rate card
    "normalize_service",
    "RateCardStore",
    "InMemoryRateCardStore",
    "JsonHistoryStore",
    "LedgerEntry",
    "PriceObservation",
    "learn_from_bill",
    "LearningReport",
    # Errors
    "AuditError",
    "InputMalformedError",
    "StorageUnavailableError",
]
