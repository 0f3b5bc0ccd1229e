"""
Comparable projection of freight documents.

Purchase orders, bills of lading and invoices carry different field sets.
The linkers, the oracle prompts and the analyzer's normalization work
against this shared projection instead of the concrete models.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.utils.matching_rules import parse_charges, charges_total, to_money, money_to_float


@dataclass
class ComparableDocument:
    kind: str  # purchase_order, bill_of_lading, invoice
    id: str
    number: str
    carrier_name: Optional[str]
    origin: Optional[str] = None
    destination: Optional[str] = None
    dates: Dict[str, Optional[date]] = field(default_factory=dict)
    charges: List[Tuple[str, Optional[Decimal]]] = field(default_factory=list)
    has_charges: bool = True
    total: Optional[Decimal] = None
    references: Dict[str, Optional[str]] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Plain dict rendering for oracle prompts"""
        payload = {
            "document_type": self.kind,
            "number": self.number,
            "carrier": self.carrier_name,
            "origin": self.origin,
            "destination": self.destination,
            "total_amount": money_to_float(self.total),
            "charges": [
                {"description": description, "amount": money_to_float(amount)}
                for description, amount in self.charges
            ] if self.has_charges else None,
        }
        payload.update({name: value.isoformat() if value else None for name, value in self.dates.items()})
        payload.update(self.references)
        payload.update(self.extra)
        return payload


def project_purchase_order(po: PurchaseOrder) -> ComparableDocument:
    charges = parse_charges(po.expected_charges)
    return ComparableDocument(
        kind="purchase_order",
        id=po.id,
        number=po.po_number,
        carrier_name=po.carrier_name,
        origin=po.origin,
        destination=po.destination,
        dates={"pickup_date": po.pickup_date, "delivery_date": po.delivery_date},
        charges=charges,
        total=to_money(po.total_amount),
        extra={"customer": po.customer_name},
    )


def project_bill_of_lading(bol: BillOfLading) -> ComparableDocument:
    has_charges = bol.actual_charges is not None
    charges = parse_charges(bol.actual_charges) if has_charges else []
    return ComparableDocument(
        kind="bill_of_lading",
        id=bol.id,
        number=bol.bol_number,
        carrier_name=bol.carrier_name,
        origin=bol.origin,
        destination=bol.destination,
        dates={"pickup_date": bol.pickup_date, "delivery_date": bol.delivery_date},
        charges=charges,
        has_charges=has_charges,
        # A BOL has no stated total; its actual charges stand in for one
        total=charges_total(charges) if has_charges else None,
        references={"po_number": bol.po_number},
        extra={
            "weight_lbs": bol.weight_lbs,
            "item_description": bol.item_description,
            "proof_of_delivery": bool(bol.pod_file_id),
        },
    )


def project_invoice(invoice: Invoice) -> ComparableDocument:
    return ComparableDocument(
        kind="invoice",
        id=invoice.id,
        number=invoice.invoice_number,
        carrier_name=invoice.carrier_name,
        dates={"invoice_date": invoice.invoice_date, "due_date": invoice.due_date},
        charges=parse_charges(invoice.charges),
        total=to_money(invoice.total_amount),
        references={"po_number": invoice.po_number, "bol_number": invoice.bol_number},
        extra={"payment_terms": invoice.payment_terms},
    )


_PROJECTIONS = {
    PurchaseOrder: project_purchase_order,
    BillOfLading: project_bill_of_lading,
    Invoice: project_invoice,
}


def project(document) -> ComparableDocument:
    """Project any of the three document models onto the comparable field set"""
    try:
        projector = _PROJECTIONS[type(document)]
    except KeyError:
        raise TypeError(f"Cannot compare {type(document).__name__}")
    return projector(document)
