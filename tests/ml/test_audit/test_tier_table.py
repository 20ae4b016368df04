"""
Unit tests for tier ceilings and city classification.
"""

import pytest

from ml.audit.city_classifier import classify_city, METRO_CITIES
from ml.audit.tier_table import (
    CityTier,
    ServiceCategory,
    ceiling_for,
    get_tier_label,
    get_tier_rates,
)


class TestCeilings:
    """Tests for the static tier table."""

    @pytest.mark.parametrize("tier,category,expected", [
        (CityTier.METRO, ServiceCategory.ROOM, 4000),
        (CityTier.METRO, ServiceCategory.CONSULTATION, 1500),
        (CityTier.METRO, ServiceCategory.ICU, 8000),
        (CityTier.METRO, ServiceCategory.IMAGING, 7000),
        (CityTier.TIER2, ServiceCategory.ROOM, 2500),
        (CityTier.TIER2, ServiceCategory.CONSULTATION, 800),
        (CityTier.TIER2, ServiceCategory.ICU, 5000),
        (CityTier.TIER2, ServiceCategory.IMAGING, 4500),
        (CityTier.GOVERNMENT_SCHEME, ServiceCategory.ROOM, 1000),
        (CityTier.GOVERNMENT_SCHEME, ServiceCategory.CONSULTATION, 350),
        (CityTier.GOVERNMENT_SCHEME, ServiceCategory.ICU, 2000),
        (CityTier.GOVERNMENT_SCHEME, ServiceCategory.IMAGING, 2500),
    ])
    def test_default_table(self, tier, category, expected):
        assert ceiling_for(category, tier) == expected

    def test_accepts_string_values(self):
        assert ceiling_for("icu", "metro") == 8000

    def test_metro_above_tier2_above_scheme(self):
        for category in ServiceCategory:
            metro = ceiling_for(category, CityTier.METRO)
            tier2 = ceiling_for(category, CityTier.TIER2)
            scheme = ceiling_for(category, CityTier.GOVERNMENT_SCHEME)
            assert metro > tier2 > scheme

    def test_tier_rates_shape(self):
        rates = get_tier_rates(CityTier.TIER2)

        assert rates["room_private"] == 2500
        assert rates["consultation"] == 800
        assert rates["icu"] == 5000
        assert rates["mri"] == 4500
        assert rates["desc"] == "Tier-2 City Rates (Moderate)"

    def test_labels(self):
        assert get_tier_label(CityTier.METRO) == "Metro City Rates (High)"
        assert get_tier_label(CityTier.GOVERNMENT_SCHEME) == "Govt Scheme Rates"


class TestClassifyCity:
    """Tests for city tier classification."""

    @pytest.mark.parametrize("city", [
        "Mumbai", "DELHI", "Bangalore", "Bengaluru", "chennai",
        "Kolkata", "Hyderabad", "Pune",
    ])
    def test_metros(self, city):
        assert classify_city(city) == CityTier.METRO

    def test_substring_match(self):
        assert classify_city("Navi Mumbai") == CityTier.METRO
        assert classify_city("New Delhi, India") == CityTier.METRO

    @pytest.mark.parametrize("city", ["Jaipur", "Lucknow", "Indore", "Nagpur"])
    def test_other_cities_are_tier2(self, city):
        assert classify_city(city) == CityTier.TIER2

    @pytest.mark.parametrize("city", [None, "", "   "])
    def test_missing_city_is_tier2(self, city):
        assert classify_city(city) == CityTier.TIER2

    def test_never_selects_government_scheme(self):
        for city in list(METRO_CITIES) + ["Jaipur", "cghs", "government"]:
            assert classify_city(city) != CityTier.GOVERNMENT_SCHEME
