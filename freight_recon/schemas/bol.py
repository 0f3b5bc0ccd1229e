from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import date, datetime
from freight_recon.schemas.document import Charge


class BOLResponse(BaseModel):
    id: str
    bol_number: str
    po_number: str
    carrier_name: str
    origin: str
    destination: str
    pickup_date: Optional[date] = None
    delivery_date: Optional[date] = None
    weight_lbs: Optional[float] = None
    item_description: Optional[str] = None
    actual_charges: Optional[List[Charge]] = None
    pod_file_id: Optional[str] = None
    pod_signed_at: Optional[datetime] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BOLCreate(BaseModel):
    bol_number: str = Field(..., min_length=1)
    po_number: str
    carrier_name: str
    origin: str
    destination: str
    pickup_date: Optional[date] = None
    delivery_date: Optional[date] = None
    weight_lbs: Optional[float] = None
    item_description: Optional[str] = None
    actual_charges: Optional[List[Charge]] = None
    pod_file_id: Optional[str] = None
    pod_signed_at: Optional[datetime] = None
    status: Literal["pending", "delivered"] = "pending"
