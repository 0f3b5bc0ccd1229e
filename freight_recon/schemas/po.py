from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import date, datetime
from decimal import Decimal
from freight_recon.schemas.document import Charge


class POResponse(BaseModel):
    id: str
    po_number: str
    customer_name: str
    carrier_name: str
    origin: str
    destination: str
    pickup_date: Optional[date] = None
    delivery_date: Optional[date] = None
    expected_charges: List[Charge] = []
    total_amount: Decimal
    status: str
    po_file_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class POCreate(BaseModel):
    po_number: str = Field(..., min_length=1)
    customer_name: str
    carrier_name: str
    origin: str
    destination: str
    pickup_date: Optional[date] = None
    delivery_date: Optional[date] = None
    expected_charges: List[Charge] = []
    total_amount: Optional[Decimal] = None  # Defaults to the sum of expected charges
    status: Literal["pending", "bol_received"] = "pending"
    po_file_id: Optional[str] = None
