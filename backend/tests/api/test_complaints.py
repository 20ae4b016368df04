"""
Tests for complaint drafting and PDF endpoints.
"""

from fastapi.testclient import TestClient

from ml.llm.complaint_letter import NO_COMPLAINT_MESSAGE
from ml.llm.llm_wrapper import MockProvider

from app.api.deps import get_complaint_provider
from app.main import app


def _audited(client: TestClient, bill: dict) -> dict:
    return client.post("/api/audit", json=bill).json()


class TestGenerateComplaint:
    """Tests for POST /api/generate-complaint."""

    def test_drafts_complaint(self, client: TestClient, extracted_bill, complaint_provider):
        audit = _audited(client, extracted_bill)

        response = client.post(
            "/api/generate-complaint",
            json={"transcript": "The room was shared.", "auditResult": audit},
        )

        assert response.status_code == 200
        text = response.json()["complaintText"]
        assert text.startswith("From: Rajesh Sharma")
        assert text.endswith("Yours faithfully,\nRajesh Sharma")
        assert "The room was shared." in complaint_provider.prompts[0]

    def test_nothing_flagged(self, client: TestClient, complaint_provider):
        audit = _audited(client, {
            "city": "Mumbai",
            "line_items": [{"service": "Consultation", "price": 500}],
        })

        response = client.post("/api/generate-complaint", json={"auditResult": audit})

        assert response.json()["complaintText"] == NO_COMPLAINT_MESSAGE
        assert complaint_provider.prompts == []

    def test_fallback_letter_on_model_error(self, client: TestClient, extracted_bill):
        app.dependency_overrides[get_complaint_provider] = lambda: MockProvider(
            error=RuntimeError("Groq down")
        )
        audit = _audited(client, extracted_bill)

        response = client.post("/api/generate-complaint", json={"auditResult": audit})

        assert response.status_code == 200
        assert "Subject: Complaint regarding overcharging" in response.json()["complaintText"]

    def test_missing_audit_result(self, client: TestClient):
        response = client.post("/api/generate-complaint", json={"transcript": "hello"})

        assert response.status_code == 400


class TestComplaintPdf:
    """Tests for the PDF endpoints."""

    def test_complaint_pdf(self, client: TestClient):
        response = client.post(
            "/api/generate-complaint-pdf",
            json={"complaintText": "From: Rajesh Sharma\n\nDear Sir,\n\nPlease refund."},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "attachment" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_complaint_pdf_requires_text(self, client: TestClient):
        response = client.post("/api/generate-complaint-pdf", json={"complaintText": "  "})

        assert response.status_code == 400

    def test_bill_pdf_with_summary(self, client: TestClient):
        response = client.post("/api/generate-pdf", json={
            "complaint_text": "Dear Sir,\n\nPlease refund.",
            "items": [
                {"name": "Room Rent", "charged_price": 7500, "standard_price": 4000},
                {"name": "Consultation", "charged_price": 700, "standard_price": 1500,
                 "is_overpriced": False},
            ],
            "total_charged": 8200,
            "total_savings": 3500,
        })

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_bill_pdf_requires_text(self, client: TestClient):
        response = client.post("/api/generate-pdf", json={"items": []})

        assert response.status_code == 400
