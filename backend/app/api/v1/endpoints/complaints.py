"""
Complaint Letter API Endpoints.

Drafts a formal complaint for the overpriced items of an audited bill
and renders complaint letters as downloadable PDFs.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from ml.llm.complaint_letter import generate_complaint
from ml.llm.llm_wrapper import LLMProvider

from app.api.deps import get_complaint_provider
from app.core.exceptions import BadRequestException
from app.core.rate_limiter import limiter, RATE_LIMITS
from app.schemas.bill import (
    BillPdfRequest,
    ComplaintPdfRequest,
    ComplaintRequest,
    ComplaintResponse,
)
from app.services.pdf_service import render_complaint_pdf

logger = logging.getLogger(__name__)

router = APIRouter()

PDF_FILENAME = "complaint.pdf"


def _pdf_response(pdf_bytes: bytes) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={PDF_FILENAME}"},
    )


@router.post("/generate-complaint", response_model=ComplaintResponse, response_model_by_alias=True)
@limiter.limit(RATE_LIMITS["complaint"])
async def draft_complaint(
    request: Request,
    payload: ComplaintRequest,
    provider: LLMProvider = Depends(get_complaint_provider),
):
    """
    Draft a complaint letter for an audited bill.

    Returns a fixed message, without calling the model, when no item
    was flagged.
    """
    if payload.audit_result is None:
        raise BadRequestException("Audit result is required")

    complaint_text = await run_in_threadpool(
        generate_complaint,
        payload.audit_result,
        payload.transcript or "",
        provider,
    )
    return ComplaintResponse(complaint_text=complaint_text)


@router.post("/generate-complaint-pdf")
@limiter.limit(RATE_LIMITS["default"])
async def complaint_pdf(request: Request, payload: ComplaintPdfRequest):
    """Render a complaint letter as a PDF."""
    if not payload.complaint_text or not payload.complaint_text.strip():
        raise BadRequestException("Complaint text is required")

    return _pdf_response(render_complaint_pdf(payload.complaint_text))


@router.post("/generate-pdf")
@limiter.limit(RATE_LIMITS["default"])
async def bill_complaint_pdf(request: Request, payload: BillPdfRequest):
    """Render a complaint letter with a bill summary and overpriced items table."""
    if not payload.complaint_text or not payload.complaint_text.strip():
        raise BadRequestException("Complaint text is required")

    items = [item.model_dump() for item in payload.items] if payload.items is not None else None
    pdf_bytes = render_complaint_pdf(
        payload.complaint_text,
        items=items,
        total_charged=payload.total_charged,
        total_savings=payload.total_savings,
        currency=payload.currency,
    )
    return _pdf_response(pdf_bytes)
