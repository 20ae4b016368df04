"""
Tests for the bill audit service.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from ml.audit.exceptions import InputMalformedError, StorageUnavailableError
from ml.audit.rate_card import InMemoryRateCardStore, JsonHistoryStore
from ml.audit.tier_table import CityTier
from ml.extraction.bill_extractor import ExtractionError
from ml.llm.llm_wrapper import MockProvider

from app.services.audit_service import BillAuditService


@pytest.fixture
def store() -> InMemoryRateCardStore:
    return InMemoryRateCardStore()


@pytest.fixture
def service(store) -> BillAuditService:
    return BillAuditService(store)


@pytest.fixture
def raw_bill() -> dict:
    return {
        "hospital_name": "Lakeview Hospital",
        "city": "Kolkata",
        "line_items": [{"service": "ICU Charges", "price": 13000}],
    }


class TestAudit:
    """Tests for BillAuditService.audit."""

    def test_audits_against_rate_card(self, service, store, raw_bill):
        store.record_observation("ICU Charges", 10000, "Kolkata")

        result = service.audit(raw_bill)

        assert result.line_items[0].standard_price == 10000
        assert result.line_items[0].flagged is False

    def test_tier_override(self, service, raw_bill):
        result = service.audit(raw_bill, tier_override=CityTier.GOVERNMENT_SCHEME)

        assert result.line_items[0].standard_price == 2000

    def test_custom_multiplier(self, store, raw_bill):
        raw_bill["line_items"][0]["price"] = 11000

        # 11000 / 8000 = 1.375
        assert BillAuditService(store).audit(raw_bill).line_items[0].flagged is False
        assert BillAuditService(store, overcharge_multiplier=1.2).audit(raw_bill).line_items[0].flagged is True

    def test_records_metrics(self, service, raw_bill):
        with patch("app.services.audit_service.track_audit_result") as mock_track:
            service.audit(raw_bill, source="json")

        kwargs = mock_track.call_args.kwargs
        assert kwargs["tier"] == "metro"
        assert kwargs["source"] == "json"
        assert kwargs["flagged_count"] == 1
        assert kwargs["potential_savings"] == 5000

    def test_malformed_bill_tracked_and_raised(self, service):
        with patch("app.services.audit_service.track_rejected_bill") as mock_track:
            with pytest.raises(InputMalformedError):
                service.audit({"line_items": [{"price": 10}]})

        mock_track.assert_called_once_with("line_items[0].service")

    def test_wrongly_shaped_history_falls_back_to_tiers(self, tmp_path, raw_bill):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"bills": [], "rateCard": [{"icu charges": 1}]}), encoding="utf-8")

        result = BillAuditService(JsonHistoryStore(path)).audit(raw_bill)

        assert result.line_items[0].standard_price == 8000

    def test_unreadable_store_falls_back_to_tiers(self, raw_bill):
        store = MagicMock()
        store.snapshot.side_effect = StorageUnavailableError("corrupt")

        result = BillAuditService(store).audit(raw_bill)

        assert result.line_items[0].standard_price == 8000


class TestAnalyzeUpload:
    """Tests for BillAuditService.analyze_upload."""

    def test_extracts_then_audits(self, service, raw_bill):
        provider = MockProvider(response=json.dumps(raw_bill))

        result = service.analyze_upload(b"img", "image/png", provider)

        assert result.hospital_name == "Lakeview Hospital"
        assert result.potential_savings == 5000

    def test_extraction_failure(self, service):
        with patch("app.services.audit_service.track_extraction") as mock_track:
            with pytest.raises(ExtractionError):
                service.analyze_upload(b"img", "image/png", MockProvider(response="???"))

        assert mock_track.call_args.kwargs["success"] is False


class TestLearn:
    """Tests for BillAuditService.learn."""

    def test_learns_prices(self, service, store, raw_bill):
        report = service.learn(service.audit(raw_bill))

        assert report.ok
        assert store.average_price_for("icu charges") == 13000

    def test_unexpected_error_is_reported(self, service, raw_bill):
        result = service.audit(raw_bill)

        with patch("app.services.audit_service.learn_from_bill", side_effect=KeyError("boom")), \
                patch("app.services.audit_service.capture_learning_failure") as mock_capture:
            assert service.learn(result) is None

        mock_capture.assert_called_once()
        assert mock_capture.call_args.args[1] is result

    def test_reports_rate_card_size(self, service, raw_bill):
        result = service.audit(raw_bill)

        with patch("app.services.audit_service.track_learning") as mock_track, \
                patch.object(service.store, "snapshot", side_effect=AssertionError("copied")):
            service.learn(result)

        assert mock_track.call_args.kwargs["rate_card_size"] == 1
