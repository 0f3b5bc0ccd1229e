from functools import partial
from sqlalchemy import Column, String, Numeric, Float, ForeignKey, DateTime, Date, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from freight_recon.database import Base
from freight_recon.utils.ids import generate_id


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True, default=partial(generate_id, "invoice"))
    invoice_number = Column(String, unique=True, nullable=False, index=True)
    carrier_name = Column(String, nullable=False)
    invoice_date = Column(Date, nullable=True)

    # References as stated on the invoice
    po_number = Column(String, nullable=False, index=True)  # Anchor for all linkage
    bol_number = Column(String, nullable=True)

    # Resolved links
    po_id = Column(String, ForeignKey("purchase_orders.id"), nullable=True)
    bol_id = Column(String, ForeignKey("bills_of_lading.id"), nullable=True)

    charges = Column(JSON, nullable=False, default=list)  # [{description, amount}]
    total_amount = Column(Numeric(10, 2), nullable=False)
    payment_terms = Column(String, nullable=True)  # e.g. "NET 30"
    due_date = Column(Date, nullable=True)
    invoice_file_id = Column(String, ForeignKey("files.id"), nullable=True)

    # Matching metadata
    match_type = Column(String, nullable=True)  # exact, fuzzy, manual
    match_confidence = Column(Float, default=0.0)

    status = Column(String, nullable=False, default="pending", index=True)  # pending, matched, flagged, approved, disputed, rejected

    # Approval
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String, nullable=True)
    approval_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    purchase_order = relationship("PurchaseOrder")
    bill_of_lading = relationship("BillOfLading")
    invoice_file = relationship("File")
