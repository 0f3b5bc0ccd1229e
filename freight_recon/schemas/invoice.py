from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, datetime
from decimal import Decimal
from freight_recon.schemas.document import Charge


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    carrier_name: str
    invoice_date: Optional[date] = None
    po_number: str
    bol_number: Optional[str] = None
    po_id: Optional[str] = None
    bol_id: Optional[str] = None
    charges: List[Charge] = []
    total_amount: Decimal
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None
    invoice_file_id: Optional[str] = None
    match_type: Optional[Literal["exact", "fuzzy", "manual"]] = None
    match_confidence: Optional[float] = None
    status: str
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approval_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    invoice_number: str = Field(..., min_length=1)
    carrier_name: str
    invoice_date: Optional[date] = None
    po_number: str = Field(..., min_length=1)  # Required for 3-way matching
    bol_number: Optional[str] = None
    charges: List[Charge] = []
    total_amount: Optional[Decimal] = None  # Defaults to the sum of charges
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None
    invoice_file_id: Optional[str] = None
    run_matching: bool = True  # Schedule the matching run after creation


class DecisionRequest(BaseModel):
    """Body for the approve / dispute / reject endpoints"""
    notes: Optional[str] = None
    user_identifier: str = "manager@example.com"


class DecisionCreate(DecisionRequest):
    """Approve, dispute or reject a matched or flagged invoice"""
    decision: str = Field(..., pattern="^(approved|disputed|rejected)$")


class ManualLinkRequest(BaseModel):
    """Operator-chosen PO (and optionally BOL) for an invoice"""
    po_id: str
    bol_id: Optional[str] = None
