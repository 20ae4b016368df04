"""
Bill Audit API Schemas.

Pydantic models for bill analysis, history, rate card, complaint and
transcription APIs.
"""

from typing import Optional, List
from enum import Enum

from pydantic import BaseModel, Field


# ============================================
# Enums
# ============================================

class CityTierEnum(str, Enum):
    METRO = "metro"
    TIER2 = "tier2"
    GOVERNMENT_SCHEME = "government_scheme"


# ============================================
# Audit Schemas
# ============================================

class AuditedLineItemResponse(BaseModel):
    """Line item annotated by the audit engine."""
    service: str
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0, description="Charged amount")
    standard_price: float = Field(..., description="Fair price the charge was compared against")
    flagged: bool
    savings: float = Field(..., ge=0, description="Amount over the standard price, if flagged")
    suspicious: bool = Field(False, description="Flagged upstream by the extraction model")
    indeterminate: bool = Field(False, description="No usable standard price")


class RateTierResponse(BaseModel):
    """Tier ceilings used for the bill."""
    room_private: float
    consultation: float
    icu: float
    mri: float
    desc: str


class AuditResponse(BaseModel):
    """Audited bill."""
    hospital_name: str = ""
    patient_name: str = ""
    bill_date: str = ""
    city: str = ""
    total_amount: float
    potential_savings: float
    city_tier: str = Field(..., description="Display label of the city tier")
    tier: CityTierEnum
    rate_tier: RateTierResponse
    line_items: List[AuditedLineItemResponse]


# ============================================
# History / Rate Card Schemas
# ============================================

class BillHistoryEntry(BaseModel):
    """Bill stored in the audit trail."""
    id: str = ""
    timestamp: str = ""
    hospital_name: str = ""
    patient_name: str = ""
    bill_date: str = ""
    city: str = ""
    total_amount: float = 0
    potential_savings: float = 0
    line_items: List[dict] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    bills: List[BillHistoryEntry]
    count: int


class PriceObservationResponse(BaseModel):
    price: float
    city: str
    timestamp: str


class LedgerEntryResponse(BaseModel):
    """Learned prices for one service."""
    service: str
    average_price: float
    observation_count: int
    last_updated: Optional[str] = None
    prices: List[PriceObservationResponse] = Field(default_factory=list)


class RateCardResponse(BaseModel):
    services: List[LedgerEntryResponse]
    total_services: int


# ============================================
# Complaint Schemas
# ============================================

class ComplaintRequest(BaseModel):
    """Request to draft a complaint for an audited bill."""
    transcript: Optional[str] = Field("", description="Patient's transcribed voice input")
    audit_result: Optional[dict] = Field(None, alias="auditResult")

    class Config:
        populate_by_name = True


class ComplaintResponse(BaseModel):
    complaint_text: str = Field(..., alias="complaintText")

    class Config:
        populate_by_name = True


class ComplaintPdfRequest(BaseModel):
    complaint_text: Optional[str] = Field(None, alias="complaintText")

    class Config:
        populate_by_name = True


class PdfItem(BaseModel):
    """Overpriced item listed in the PDF summary."""
    name: str
    charged_price: float
    standard_price: float
    is_overpriced: bool = True


class BillPdfRequest(BaseModel):
    """Complaint letter plus bill summary."""
    complaint_text: Optional[str] = None
    items: Optional[List[PdfItem]] = None
    total_charged: Optional[float] = None
    total_savings: Optional[float] = None
    currency: str = "INR"


# ============================================
# Transcription Schemas
# ============================================

class TranscriptionResponse(BaseModel):
    transcription: str


class VoiceComplaintResponse(BaseModel):
    transcript: str
