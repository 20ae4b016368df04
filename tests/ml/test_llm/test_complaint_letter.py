"""
Unit tests for complaint letter generation.

Tests prompt building, response cleanup, patient name enforcement and
the template fallback with mocked providers.
"""

import pytest

from ml.audit.audit_engine import audit_bill
from ml.llm.complaint_letter import (
    generate_complaint,
    get_flagged_items,
    NO_COMPLAINT_MESSAGE,
    UNKNOWN_PATIENT,
    _build_complaint_prompt,
    _clean_complaint_response,
    _enforce_patient_name,
    _format_items_for_prompt,
    _generate_fallback_complaint,
)
from ml.llm.llm_wrapper import MockProvider


@pytest.fixture
def audit_dict() -> dict:
    """Audit result with one flagged item."""
    return {
        "hospital_name": "City Care Hospital",
        "patient_name": "Priya Nair",
        "bill_date": "2024-03-20",
        "city": "Mumbai",
        "total_amount": 13200,
        "potential_savings": 3500,
        "line_items": [
            {"service": "Room Rent", "price": 7500, "standard_price": 4000, "flagged": True},
            {"service": "Consultation", "price": 700, "standard_price": 1500, "flagged": False},
        ],
    }


@pytest.fixture
def clean_audit_dict(audit_dict) -> dict:
    audit_dict["line_items"][0]["flagged"] = False
    return audit_dict


class TestGenerateComplaint:
    """Tests for generate_complaint."""

    def test_no_flagged_items_skips_model(self, clean_audit_dict):
        provider = MockProvider(response="should not be used")

        letter = generate_complaint(clean_audit_dict, provider=provider)

        assert letter == NO_COMPLAINT_MESSAGE
        assert provider.prompts == []

    def test_uses_model_response(self, audit_dict):
        provider = MockProvider(
            response="From: Priya Nair\n\nDear Sir,\n\nI was overcharged.\n\nYours faithfully,\nPriya Nair"
        )

        letter = generate_complaint(audit_dict, provider=provider)

        assert "I was overcharged." in letter
        assert letter.startswith("From: Priya Nair")
        assert letter.endswith("Yours faithfully,\nPriya Nair")

    def test_prompt_contains_bill_details(self, audit_dict):
        provider = MockProvider(response="Letter body")

        generate_complaint(audit_dict, transcript="They charged me twice", provider=provider)

        prompt = provider.prompts[0]
        assert "City Care Hospital" in prompt
        assert "Room Rent: Charged ₹7500, Fair Price ₹4000" in prompt
        assert "They charged me twice" in prompt

    def test_enforces_patient_name(self, audit_dict):
        provider = MockProvider(
            response="From: [Patient's Name]\n\nDear Sir,\n\nPlease refund.\n\nYours faithfully,\nJohn"
        )

        letter = generate_complaint(audit_dict, provider=provider)

        assert "[Patient's Name]" not in letter
        assert letter.startswith("From: Priya Nair")
        assert letter.endswith("Yours faithfully,\nPriya Nair")

    def test_fallback_on_provider_error(self, audit_dict):
        provider = MockProvider(error=RuntimeError("API down"))

        letter = generate_complaint(audit_dict, provider=provider)

        assert letter.startswith("From: Priya Nair")
        assert "Room Rent" in letter
        assert "₹3500" in letter

    def test_fallback_on_empty_response(self, audit_dict):
        letter = generate_complaint(audit_dict, provider=MockProvider(response="   "))

        assert "Subject: Complaint regarding overcharging" in letter

    def test_accepts_audit_result_object(self):
        result = audit_bill({
            "patient_name": "Arjun Rao",
            "city": "Pune",
            "line_items": [{"service": "MRI Brain", "price": 20000}],
        }, {})
        provider = MockProvider(response="Dear Sir,\n\nPlease review the MRI charge.")

        letter = generate_complaint(result, provider=provider)

        assert letter.startswith("From: Arjun Rao")
        assert "MRI Brain: Charged ₹20000.0, Fair Price ₹7000.0" in provider.prompts[0]

    def test_missing_patient_name(self, audit_dict):
        audit_dict["patient_name"] = ""

        letter = generate_complaint(audit_dict, provider=MockProvider(response="Dear Sir,"))

        assert letter.startswith(f"From: {UNKNOWN_PATIENT}")

    def test_missing_audit_result(self):
        with pytest.raises(ValueError):
            generate_complaint(None, provider=MockProvider())


class TestFlaggedItems:
    """Tests for get_flagged_items."""

    def test_flagged_and_is_overpriced(self):
        audit = {"items": [
            {"name": "Room", "is_overpriced": True},
            {"name": "ICU", "flagged": True},
            {"name": "Consult", "flagged": False},
        ]}

        assert [i["name"] for i in get_flagged_items(audit)] == ["Room", "ICU"]

    def test_no_items(self):
        assert get_flagged_items({}) == []


class TestFormatItemsForPrompt:
    """Tests for prompt item formatting."""

    def test_alternate_keys(self):
        text = _format_items_for_prompt([{"name": "ICU", "charged_price": 9000, "fair_price": 5000}])

        assert text == "- ICU: Charged ₹9000, Fair Price ₹5000"

    def test_missing_fair_price_estimated(self):
        text = _format_items_for_prompt([{"service": "Implant", "price": 1000}])

        assert text == "- Implant: Charged ₹1000, Fair Price ₹700"


class TestBuildComplaintPrompt:
    """Tests for _build_complaint_prompt."""

    def test_defaults_for_missing_fields(self):
        prompt = _build_complaint_prompt({}, [], "")

        assert "Not specified" in prompt
        assert "No voice input provided" in prompt


class TestCleanComplaintResponse:
    """Tests for _clean_complaint_response."""

    def test_removes_prefix(self):
        assert _clean_complaint_response("Here is the letter:\nDear Sir,") == "Dear Sir,"

    def test_removes_markdown(self):
        assert _clean_complaint_response("```\nDear Sir,\n```") == "Dear Sir,"

    def test_preserves_clean_response(self):
        assert _clean_complaint_response("Dear Sir,\nThanks.") == "Dear Sir,\nThanks."


class TestEnforcePatientName:
    """Tests for _enforce_patient_name."""

    def test_adds_missing_header_and_closing(self):
        letter = _enforce_patient_name("Dear Sir,", "Priya Nair")

        assert letter == "From: Priya Nair\n\nDear Sir,\n\nYours faithfully,\nPriya Nair"

    def test_replaces_placeholder(self):
        letter = _enforce_patient_name("I, {patient_name}, object.", "Priya Nair")

        assert "I, Priya Nair, object." in letter

    def test_name_with_special_characters(self):
        letter = _enforce_patient_name("From: X\n\nYours faithfully,\nX", r"A\1 B")

        assert letter.startswith("From: A\\1 B")


class TestFallbackComplaint:
    """Tests for the template letter."""

    def test_includes_voice_input(self, audit_dict):
        letter = _generate_fallback_complaint(
            audit_dict, get_flagged_items(audit_dict), "Room was shared"
        )

        assert "Room was shared" in letter
        assert letter.rstrip().endswith("Priya Nair")
