"""
City-tier price ceilings for Indian hospital services.

Provides the static fallback benchmarks used when no learned price
exists for a service:
- Metro cities (Mumbai, Delhi, Bangalore, ...) carry the highest ceilings
- Tier-2 cities carry moderate ceilings
- Government scheme (CGHS / Ayushman) rates carry the lowest ceilings

The government scheme tier is never auto-selected from a city name; it
must be requested explicitly.
"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping, TypedDict

logger = logging.getLogger(__name__)


class CityTier(str, Enum):
    """City tiers for fallback pricing."""
    METRO = "metro"
    TIER2 = "tier2"
    GOVERNMENT_SCHEME = "government_scheme"


class ServiceCategory(str, Enum):
    """Billable service categories that carry a tier ceiling."""
    ROOM = "room"
    CONSULTATION = "consultation"
    ICU = "icu"
    IMAGING = "imaging"


class TierRates(TypedDict):
    """Ceilings (INR) for one tier, in the shape returned to API callers."""
    room_private: float
    consultation: float
    icu: float
    mri: float
    desc: str


_CEILINGS: Mapping[CityTier, Mapping[ServiceCategory, float]] = MappingProxyType({
    CityTier.METRO: MappingProxyType({
        ServiceCategory.ROOM: 4000.0,
        ServiceCategory.CONSULTATION: 1500.0,
        ServiceCategory.ICU: 8000.0,
        ServiceCategory.IMAGING: 7000.0,
    }),
    CityTier.TIER2: MappingProxyType({
        ServiceCategory.ROOM: 2500.0,
        ServiceCategory.CONSULTATION: 800.0,
        ServiceCategory.ICU: 5000.0,
        ServiceCategory.IMAGING: 4500.0,
    }),
    CityTier.GOVERNMENT_SCHEME: MappingProxyType({
        ServiceCategory.ROOM: 1000.0,
        ServiceCategory.CONSULTATION: 350.0,
        ServiceCategory.ICU: 2000.0,
        ServiceCategory.IMAGING: 2500.0,
    }),
})

TIER_LABELS: Mapping[CityTier, str] = MappingProxyType({
    CityTier.METRO: "Metro City Rates (High)",
    CityTier.TIER2: "Tier-2 City Rates (Moderate)",
    CityTier.GOVERNMENT_SCHEME: "Govt Scheme Rates",
})


def ceiling_for(category: ServiceCategory, tier: CityTier) -> float:
    """
    Look up the ceiling price for a service category in a city tier.

    Args:
        category: Service category.
        tier: City tier.

    Returns:
        float: Ceiling price in INR.
    """
    return _CEILINGS[CityTier(tier)][ServiceCategory(category)]


def get_tier_label(tier: CityTier) -> str:
    """Display label for a tier."""
    return TIER_LABELS[CityTier(tier)]


def get_tier_rates(tier: CityTier) -> TierRates:
    """
    Get all ceilings for a tier as a plain dict.

    Keys follow the rate card shown to users (``room_private``, ``mri``)
    rather than the category enum names.
    """
    ceilings = _CEILINGS[CityTier(tier)]
    return TierRates(
        room_private=ceilings[ServiceCategory.ROOM],
        consultation=ceilings[ServiceCategory.CONSULTATION],
        icu=ceilings[ServiceCategory.ICU],
        mri=ceilings[ServiceCategory.IMAGING],
        desc=get_tier_label(tier),
    )
