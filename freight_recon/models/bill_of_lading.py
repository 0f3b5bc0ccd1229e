from functools import partial
from sqlalchemy import Column, String, Float, Text, ForeignKey, DateTime, Date, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from freight_recon.database import Base
from freight_recon.utils.ids import generate_id


class BillOfLading(Base):
    __tablename__ = "bills_of_lading"

    id = Column(String, primary_key=True, default=partial(generate_id, "bill_of_lading"))
    bol_number = Column(String, unique=True, nullable=False, index=True)
    po_number = Column(String, nullable=False, index=True)  # Soft reference, not enforced at match time
    carrier_name = Column(String, nullable=False)
    origin = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    pickup_date = Column(Date, nullable=True)
    delivery_date = Column(Date, nullable=True)
    weight_lbs = Column(Float, nullable=True)
    item_description = Column(Text, nullable=True)
    actual_charges = Column(JSON, nullable=True)  # [{description, amount}] when listed on the BOL
    pod_file_id = Column(String, ForeignKey("files.id"), nullable=True)
    pod_signed_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)  # pending, delivered, invoiced, matched
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    pod_file = relationship("File")
