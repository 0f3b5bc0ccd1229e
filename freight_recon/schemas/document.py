from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Dict, Any
from datetime import datetime
from decimal import Decimal


class Charge(BaseModel):
    """A single freight charge line (linehaul, fuel surcharge, detention, ...)"""
    description: str = Field(..., min_length=1)
    amount: Decimal


def charges_to_json(charges: Optional[List[Charge]]) -> Optional[List[Dict[str, Any]]]:
    """Serialize charges for a JSON column"""
    if charges is None:
        return None
    return [{"description": c.description, "amount": float(c.amount)} for c in charges]


class StatusUpdate(BaseModel):
    """Manual lifecycle status change"""
    status: str


class FileResponse(BaseModel):
    id: str
    filename: str
    mime_type: str
    size_bytes: int
    storage_path: str
    file_type: Optional[Literal["invoice_pdf", "pod", "po_pdf", "bol_pdf", "other"]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
