"""
City classification for tier-based pricing.

Maps a free-text city name (as read off a bill) to a CityTier. Unknown
or missing cities fall back to TIER2.
"""

import logging
from typing import Optional

from ml.audit.tier_table import CityTier

logger = logging.getLogger(__name__)

# Substrings, so "Navi Mumbai" or "New Delhi" still match
METRO_CITIES = (
    "mumbai",
    "delhi",
    "bangalore",
    "bengaluru",
    "chennai",
    "kolkata",
    "hyderabad",
    "pune",
)


def classify_city(city_name: Optional[str]) -> CityTier:
    """
    Classify a city into a pricing tier.

    Args:
        city_name: City name as extracted from the bill. May be empty.

    Returns:
        CityTier: METRO if the name contains a metro city, else TIER2.
    """
    if not city_name:
        return CityTier.TIER2

    city_lower = city_name.lower()
    if any(metro in city_lower for metro in METRO_CITIES):
        return CityTier.METRO

    return CityTier.TIER2
