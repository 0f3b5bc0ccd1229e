"""
Fuzzy Linker - finds the most plausible unmatched PO (or BOL) for an invoice
whose referenced numbers do not resolve exactly.

Candidates are ranked by the comparison oracle. A candidate is bound only
when the oracle's confidence meets the threshold for that document kind;
anything else, including oracle failures, is reported as no match.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from freight_recon.config import settings
from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.schemas.matching import MatchType, RankingVerdict
from freight_recon.services.comparison_oracle import ComparisonOracle, NO_CANDIDATE
from freight_recon.services.document_projection import project, ComparableDocument
from freight_recon.services.document_store import DocumentStore
from freight_recon.services.exact_linker import ResolvedDocuments
from freight_recon.utils.lifecycle import UNMATCHED_PO_STATUSES, UNMATCHED_BOL_STATUSES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FuzzyLink:
    document: Any  # PurchaseOrder or BillOfLading
    confidence: float
    reasoning: str


class FuzzyLinker:
    def __init__(
        self,
        store: DocumentStore,
        oracle: ComparisonOracle,
        po_threshold: Optional[float] = None,
        bol_threshold: Optional[float] = None,
    ):
        self.store = store
        self.oracle = oracle
        self.po_threshold = settings.fuzzy_po_confidence_threshold if po_threshold is None else po_threshold
        self.bol_threshold = settings.fuzzy_bol_confidence_threshold if bol_threshold is None else bol_threshold

    async def find_matching_po(self, invoice: Invoice) -> Optional[FuzzyLink]:
        """Best unmatched PO for the invoice, or None"""
        candidates = self.store.list_by_status("purchase_order", UNMATCHED_PO_STATUSES)
        if not candidates:
            logger.info("No unmatched POs found for fuzzy matching")
            return None

        logger.info(f"Fuzzy matching invoice {invoice.id} against {len(candidates)} unmatched POs")
        return await self._rank(
            anchor=project(invoice),
            candidates=candidates,
            context=(),
            threshold=self.po_threshold,
            label="PO",
        )

    async def find_matching_bol(self, po: PurchaseOrder, invoice: Invoice) -> Optional[FuzzyLink]:
        """Best pending BOL for the PO and invoice, or None"""
        candidates = self.store.list_by_status("bill_of_lading", UNMATCHED_BOL_STATUSES)
        if not candidates:
            logger.info("No unmatched BOLs found for fuzzy matching")
            return None

        logger.info(f"Fuzzy matching PO {po.po_number} against {len(candidates)} unmatched BOLs")
        return await self._rank(
            anchor=project(po),
            candidates=candidates,
            context=(project(invoice),),
            threshold=self.bol_threshold,
            label="BOL",
        )

    async def _rank(
        self,
        anchor: ComparableDocument,
        candidates: List[Any],
        context: Sequence[ComparableDocument],
        threshold: float,
        label: str,
    ) -> Optional[FuzzyLink]:
        try:
            verdict = await self.oracle.rank(anchor, [project(c) for c in candidates], context)
        except Exception as e:
            # Fuzzy linking is best-effort and must not abort the pipeline
            logger.error(f"Error in fuzzy {label} matching: {e}", exc_info=True)
            return None

        return accept_candidate(verdict, candidates, threshold, label)

    async def resolve(self, invoice: Invoice) -> Optional[ResolvedDocuments]:
        """
        Fuzzy-resolve the documents for an invoice whose PO number did not match.

        On success the tentative link (po_id, bol_id, match_type, match_confidence)
        is written to the invoice.

        Returns:
            ResolvedDocuments with match_type fuzzy, or None
        """
        po_link = await self.find_matching_po(invoice)
        if po_link is None:
            return None
        po = po_link.document

        bol = self.store.get_by_field("bill_of_lading", "po_number", po.po_number)
        if bol is None:
            bol_link = await self.find_matching_bol(po, invoice)
            bol = bol_link.document if bol_link else None

        invoice = self._commit_link(invoice, po, bol, po_link.confidence)
        return ResolvedDocuments(
            po=po,
            bol=bol,
            invoice=invoice,
            match_type=MatchType.FUZZY,
            match_confidence=po_link.confidence,
            link_reasoning=po_link.reasoning,
        )

    def _commit_link(self, invoice: Invoice, po: PurchaseOrder, bol: Optional[BillOfLading], confidence: float) -> Invoice:
        fields = {
            "po_id": po.id,
            "match_type": MatchType.FUZZY.value,
            "match_confidence": confidence,
        }
        if bol is not None:
            fields["bol_id"] = bol.id
        try:
            updated = self.store.update_fields("invoice", invoice.id, fields)
        except Exception as e:
            logger.error(f"Failed to record fuzzy link for invoice {invoice.id}: {e}", exc_info=True)
            return invoice
        logger.info(f"Fuzzy linked invoice {invoice.id} to PO {po.po_number} (confidence: {confidence:.2f})")
        return updated or invoice


def accept_candidate(verdict: RankingVerdict, candidates: List[Any], threshold: float, label: str = "candidate") -> Optional[FuzzyLink]:
    """Apply the acceptance policy: bind only at or above ``threshold``, never below"""
    if verdict.best_candidate_index == NO_CANDIDATE:
        logger.info(f"Oracle found no matching {label}: {verdict.reasoning}")
        return None
    if not 0 <= verdict.best_candidate_index < len(candidates):
        logger.warning(f"Oracle picked {label} index {verdict.best_candidate_index} outside {len(candidates)} candidates")
        return None
    if verdict.confidence < threshold:
        logger.info(f"Fuzzy {label} match confidence too low: {verdict.confidence} < {threshold}")
        return None

    return FuzzyLink(
        document=candidates[verdict.best_candidate_index],
        confidence=verdict.confidence,
        reasoning=verdict.reasoning,
    )
