from datetime import datetime, timezone
from functools import partial
from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from freight_recon.database import Base
from freight_recon.utils.ids import generate_id


def _utcnow():
    return datetime.now(timezone.utc)


class MatchingResult(Base):
    """Immutable record of one reconciliation attempt. The newest row per invoice is current."""
    __tablename__ = "matching_results"

    id = Column(String, primary_key=True, default=partial(generate_id, "matching_result"))
    po_id = Column(String, ForeignKey("purchase_orders.id"), nullable=False)
    bol_id = Column(String, ForeignKey("bills_of_lading.id"), nullable=True)
    invoice_id = Column(String, ForeignKey("invoices.id"), nullable=False, index=True)
    match_status = Column(String(20), nullable=False, index=True)  # perfect_match, minor_variance, major_variance, no_match
    confidence_score = Column(Float, nullable=False)  # 0.00 to 1.00
    comparison = Column(JSON, nullable=True)  # Totals, variance and charge comparison table
    reasoning = Column(Text, nullable=True)  # Oracle explanation
    flags_count = Column(Integer, nullable=False, default=0)
    high_severity_flags_count = Column(Integer, nullable=False, default=0)
    # Set client-side so that back-to-back runs order correctly
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    # Relationships
    invoice = relationship("Invoice")
    purchase_order = relationship("PurchaseOrder")
    bill_of_lading = relationship("BillOfLading")
