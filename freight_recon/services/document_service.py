"""
Intake and lifecycle operations for purchase orders, bills of lading and
invoices. OCR-extracted and manually entered documents arrive here the same way.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from freight_recon.errors import DocumentNotFoundError
from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.schemas.bol import BOLCreate
from freight_recon.schemas.document import Charge, charges_to_json
from freight_recon.schemas.invoice import InvoiceCreate, DecisionCreate
from freight_recon.schemas.po import POCreate
from freight_recon.services.document_store import DocumentStore
from freight_recon.utils.lifecycle import check_transition
from freight_recon.utils.matching_rules import to_money

logger = logging.getLogger(__name__)


def total_of(charges: List[Charge], stated_total: Optional[Decimal]) -> Decimal:
    """The stated total when given, otherwise the sum of the charges"""
    if stated_total is not None:
        return to_money(stated_total)
    total = Decimal("0.00")
    for charge in charges:
        total += Decimal(str(charge.amount))
    return to_money(total)


class DocumentService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def _require(self, kind: str, id: str):
        entity = self.store.get(kind, id)
        if entity is None:
            raise DocumentNotFoundError(kind, id)
        return entity

    def create_purchase_order(self, data: POCreate) -> PurchaseOrder:
        po = PurchaseOrder(
            po_number=data.po_number.strip(),
            customer_name=data.customer_name,
            carrier_name=data.carrier_name,
            origin=data.origin,
            destination=data.destination,
            pickup_date=data.pickup_date,
            delivery_date=data.delivery_date,
            expected_charges=charges_to_json(data.expected_charges),
            total_amount=total_of(data.expected_charges, data.total_amount),
            status=data.status,
            po_file_id=data.po_file_id,
        )
        return self.store.insert("purchase_order", po)

    def create_bill_of_lading(self, data: BOLCreate) -> BillOfLading:
        """
        Record a BOL. A PO that is still pending moves to bol_received when its
        BOL arrives.
        """
        bol = BillOfLading(
            bol_number=data.bol_number.strip(),
            po_number=data.po_number.strip(),
            carrier_name=data.carrier_name,
            origin=data.origin,
            destination=data.destination,
            pickup_date=data.pickup_date,
            delivery_date=data.delivery_date,
            weight_lbs=data.weight_lbs,
            item_description=data.item_description,
            actual_charges=charges_to_json(data.actual_charges),
            pod_file_id=data.pod_file_id,
            pod_signed_at=data.pod_signed_at,
            status=data.status,
        )
        bol = self.store.insert("bill_of_lading", bol)

        po = self.store.get_by_field("purchase_order", "po_number", bol.po_number)
        if po is not None and po.status == "pending":
            self.store.update_fields("purchase_order", po.id, {"status": "bol_received"})
            logger.info(f"PO {po.po_number} moved to bol_received")
        return bol

    def create_invoice(self, data: InvoiceCreate) -> Invoice:
        invoice = Invoice(
            invoice_number=data.invoice_number.strip(),
            carrier_name=data.carrier_name,
            invoice_date=data.invoice_date,
            po_number=data.po_number.strip(),
            bol_number=data.bol_number.strip() if data.bol_number else None,
            charges=charges_to_json(data.charges),
            total_amount=total_of(data.charges, data.total_amount),
            payment_terms=data.payment_terms,
            due_date=data.due_date,
            invoice_file_id=data.invoice_file_id,
            match_type=None,
            match_confidence=0.0,
            status="pending",
        )
        return self.store.insert("invoice", invoice)

    def change_status(self, kind: str, id: str, status: str):
        """
        Manual status change, checked against the lifecycle table.

        Raises:
            DocumentNotFoundError, InvalidStatusTransitionError
        """
        entity = self._require(kind, id)
        check_transition(kind, entity.status, status)
        logger.info(f"Manual status change for {kind} {id}: {entity.status} -> {status}")
        return self.store.update_fields(kind, id, {"status": status})

    def decide_invoice(self, invoice_id: str, decision: DecisionCreate) -> Invoice:
        """Approve, dispute or reject a matched or flagged invoice"""
        invoice = self._require("invoice", invoice_id)
        check_transition("invoice", invoice.status, decision.decision)

        fields = {"status": decision.decision, "approval_notes": decision.notes}
        if decision.decision == "approved":
            fields["approved_at"] = datetime.now(timezone.utc)
            fields["approved_by"] = decision.user_identifier
        logger.info(f"Invoice {invoice_id} {decision.decision} by {decision.user_identifier}")
        return self.store.update_fields("invoice", invoice_id, fields)

    def link_manually(self, invoice_id: str, po_id: str, bol_id: Optional[str] = None) -> Invoice:
        """Record an operator-chosen PO (and BOL) for an invoice"""
        self._require("invoice", invoice_id)
        po = self._require("purchase_order", po_id)
        fields = {"po_id": po.id, "match_type": "manual", "match_confidence": 1.0}
        if bol_id:
            fields["bol_id"] = self._require("bill_of_lading", bol_id).id
        return self.store.update_fields("invoice", invoice_id, fields)
