"""
Standard (fair) price resolution for bill line items.

Order of preference:
1. The learned average from the rate card for the exact service key
2. The tier ceiling for the first keyword category the name matches
3. The tier's consultation ceiling as a generic fallback
"""

import logging
from typing import Callable, Mapping, Optional

from ml.audit.city_classifier import classify_city
from ml.audit.rate_card import LedgerEntry, normalize_service
from ml.audit.tier_table import CityTier, ServiceCategory, ceiling_for

logger = logging.getLogger(__name__)


def _contains_any(*keywords: str) -> Callable[[str], bool]:
    def predicate(service_key: str) -> bool:
        return any(keyword in service_key for keyword in keywords)
    return predicate


# Evaluated top to bottom, first match wins ("ICU room" is a ROOM)
CATEGORY_RULES: list[tuple[Callable[[str], bool], ServiceCategory]] = [
    (_contains_any("room", "ward"), ServiceCategory.ROOM),
    (_contains_any("consultation", "opd"), ServiceCategory.CONSULTATION),
    (_contains_any("icu"), ServiceCategory.ICU),
    (_contains_any("mri", "scan"), ServiceCategory.IMAGING),
]

DEFAULT_CATEGORY = ServiceCategory.CONSULTATION


def match_category(service_name: str) -> Optional[ServiceCategory]:
    """
    Match a service name to a category by keyword.

    Args:
        service_name: Service name, any case.

    Returns:
        ServiceCategory or None if no rule matches.
    """
    service_key = normalize_service(service_name)
    for predicate, category in CATEGORY_RULES:
        if predicate(service_key):
            return category
    return None


def learned_price(service_name: str, rate_card: Mapping[str, LedgerEntry]) -> Optional[float]:
    """Average price from the rate card, if one has been learned."""
    entry = rate_card.get(normalize_service(service_name))
    if entry is None or not entry.observations or entry.average_price <= 0:
        return None
    return entry.average_price


def resolve_standard_price(
    service_name: str,
    city: Optional[str],
    rate_card: Mapping[str, LedgerEntry],
    tier_override: Optional[CityTier] = None,
) -> float:
    """
    Resolve the fair price for a service billed in a city.

    Args:
        service_name: Service name as extracted from the bill.
        city: City name from the bill (may be empty).
        rate_card: Rate card snapshot to read learned prices from.
        tier_override: Use this tier instead of classifying the city
            (e.g. GOVERNMENT_SCHEME for scheme billing).

    Returns:
        float: Standard price in INR.
    """
    learned = learned_price(service_name, rate_card)
    if learned is not None:
        return learned

    tier = tier_override or classify_city(city)
    category = match_category(service_name) or DEFAULT_CATEGORY
    return ceiling_for(category, tier)
