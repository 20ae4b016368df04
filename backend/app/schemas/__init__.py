"""
Pydantic schemas for request/response validation.
"""

from app.schemas.bill import (
    AuditResponse,
    HistoryResponse,
    RateCardResponse,
    ComplaintRequest,
    ComplaintResponse,
    ComplaintPdfRequest,
    BillPdfRequest,
    TranscriptionResponse,
    VoiceComplaintResponse,
)

__all__ = [
    "AuditResponse",
    "HistoryResponse",
    "RateCardResponse",
    "ComplaintRequest",
    "ComplaintResponse",
    "ComplaintPdfRequest",
    "BillPdfRequest",
    "TranscriptionResponse",
    "VoiceComplaintResponse",
]
