"""
Exact Linker - resolves the PO / BOL / invoice set for an invoice by the
invoice's referenced PO number, or by a fuzzy / manual link already stored on
the invoice. Read-only.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.schemas.matching import MatchType
from freight_recon.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

# Links written outside a run that FETCH_DOCUMENTS honors instead of the PO number
LINKED_MATCH_TYPES = (MatchType.FUZZY.value, MatchType.MANUAL.value)


@dataclass(frozen=True)
class ResolvedDocuments:
    """A PO and invoice, plus the BOL when one exists (a missing BOL means a 2-way match)"""
    po: PurchaseOrder
    bol: Optional[BillOfLading]
    invoice: Invoice
    match_type: MatchType = MatchType.EXACT
    match_confidence: float = 1.0
    link_reasoning: Optional[str] = None

    @property
    def is_three_way(self) -> bool:
        return self.bol is not None


def clean_reference(value: Optional[str]) -> Optional[str]:
    """Strip whitespace from a referenced document number; blank means absent"""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class ExactLinker:
    def __init__(self, store: DocumentStore):
        self.store = store

    def find_po(self, invoice: Invoice) -> Optional[PurchaseOrder]:
        po_number = clean_reference(invoice.po_number)
        if not po_number:
            return None
        return self.store.get_by_field("purchase_order", "po_number", po_number)

    def find_bol(self, invoice: Invoice, po_number: Optional[str] = None) -> Optional[BillOfLading]:
        """BOL sharing the PO number, else the BOL the invoice names directly"""
        po_number = clean_reference(po_number or invoice.po_number)
        if po_number:
            bol = self.store.get_by_field("bill_of_lading", "po_number", po_number)
            if bol:
                return bol

        bol_number = clean_reference(invoice.bol_number)
        if bol_number:
            return self.store.get_by_field("bill_of_lading", "bol_number", bol_number)
        return None

    def resolve(self, invoice: Invoice) -> Optional[ResolvedDocuments]:
        """
        Resolve documents for an invoice.

        Returns:
            ResolvedDocuments, or None when no PO carries the invoice's PO number
        """
        po = self.find_po(invoice)
        if po is None:
            logger.info(f"No PO found for invoice {invoice.id} (po_number={invoice.po_number!r})")
            return None

        bol = self.find_bol(invoice)
        logger.info(
            f"Exact link for invoice {invoice.id}: PO {po.po_number}, "
            f"BOL {bol.bol_number if bol else 'N/A'}"
        )
        return ResolvedDocuments(po=po, bol=bol, invoice=invoice)

    def resolve_stored_link(self, invoice: Invoice) -> Optional[ResolvedDocuments]:
        """
        Documents from a link recorded earlier by fuzzy or manual linking.

        Returns:
            ResolvedDocuments carrying the stored match type and confidence, or
            None when the invoice has no fuzzy / manual link
        """
        if not invoice.po_id or invoice.match_type not in LINKED_MATCH_TYPES:
            return None

        po = self.store.get("purchase_order", invoice.po_id)
        if po is None:
            logger.warning(f"Invoice {invoice.id} is linked to missing PO {invoice.po_id}")
            return None

        bol = self.store.get("bill_of_lading", invoice.bol_id) if invoice.bol_id else None
        if bol is None:
            bol = self.find_bol(invoice, po.po_number)

        logger.info(
            f"Using {invoice.match_type} link for invoice {invoice.id}: PO {po.po_number}, "
            f"BOL {bol.bol_number if bol else 'N/A'}"
        )
        confidence = invoice.match_confidence
        return ResolvedDocuments(
            po=po,
            bol=bol,
            invoice=invoice,
            match_type=MatchType(invoice.match_type),
            match_confidence=1.0 if confidence is None else confidence,
        )
