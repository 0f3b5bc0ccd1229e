from functools import partial
from sqlalchemy import Column, String, Numeric, ForeignKey, DateTime, Date, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from freight_recon.database import Base
from freight_recon.utils.ids import generate_id


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(String, primary_key=True, default=partial(generate_id, "purchase_order"))
    po_number = Column(String, unique=True, nullable=False, index=True)
    customer_name = Column(String, nullable=False)
    carrier_name = Column(String, nullable=False)
    origin = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    pickup_date = Column(Date, nullable=True)
    delivery_date = Column(Date, nullable=True)
    expected_charges = Column(JSON, nullable=False, default=list)  # [{description, amount}]
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)  # pending, bol_received, invoiced, matched, disputed
    po_file_id = Column(String, ForeignKey("files.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    po_file = relationship("File")
