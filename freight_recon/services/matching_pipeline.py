"""
Matching Pipeline - runs one reconciliation for one invoice.

    FETCH_DOCUMENTS -> ANALYZE -> SAVE_RESULT -> UPDATE_STATUSES -> DONE

Stages run strictly in order. A failure in fetch, analyze or save ends the
run in FAILED with no status changes. A failure while updating statuses is
logged and the run still completes: the saved result is authoritative.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from freight_recon.config import settings
from freight_recon.models.matching_result import MatchingResult
from freight_recon.schemas.matching import (
    FuzzyLinkResponse,
    MatchingResultResponse,
    MatchingRunResult,
    MatchingStage,
)
from freight_recon.services.comparison_oracle import ComparisonOracle, LLMComparisonOracle
from freight_recon.services.document_store import DocumentStore
from freight_recon.services.exact_linker import ExactLinker, ResolvedDocuments
from freight_recon.services.fuzzy_linker import FuzzyLinker
from freight_recon.services.match_analyzer import MatchAnalyzer, build_result_fields
from freight_recon.services.status_coordinator import StatusCoordinator

logger = logging.getLogger(__name__)

NO_PO_ERROR = "Could not find related PO for invoice"


class MatchingPipeline:
    def __init__(
        self,
        db: Session,
        oracle: Optional[ComparisonOracle] = None,
        fuzzy_fallback: Optional[bool] = None,
        po_threshold: Optional[float] = None,
        bol_threshold: Optional[float] = None,
    ):
        self.store = DocumentStore(db)
        self.oracle = oracle or LLMComparisonOracle()
        self.fuzzy_fallback = settings.fuzzy_fallback_enabled if fuzzy_fallback is None else fuzzy_fallback
        self.exact_linker = ExactLinker(self.store)
        self.fuzzy_linker = FuzzyLinker(self.store, self.oracle, po_threshold, bol_threshold)
        self.analyzer = MatchAnalyzer(self.oracle)
        self.coordinator = StatusCoordinator(self.store)

    async def run(self, invoice_id: str, allow_fuzzy: Optional[bool] = None) -> MatchingRunResult:
        """
        Run 3-way matching for an invoice. Never raises.

        Args:
            invoice_id: ID of invoice to process
            allow_fuzzy: override the configured fuzzy fallback for this run

        Returns:
            MatchingRunResult describing the outcome
        """
        logger.info(f"Processing invoice {invoice_id} with MatchingPipeline")
        allow_fuzzy = self.fuzzy_fallback if allow_fuzzy is None else allow_fuzzy

        # Stage 1: fetch related documents
        try:
            docs = await self.fetch_documents(invoice_id, allow_fuzzy)
        except Exception as e:
            logger.error(f"Error fetching documents for invoice {invoice_id}: {e}", exc_info=True)
            return self._failed(invoice_id, MatchingStage.FETCH_DOCUMENTS, str(e))

        if docs is None:
            logger.error(f"No related PO found for invoice {invoice_id}")
            return self._failed(invoice_id, MatchingStage.FETCH_DOCUMENTS, NO_PO_ERROR)

        # Stage 2: analyze with the oracle
        try:
            verdict = await self.analyzer.analyze(docs)
        except Exception as e:
            logger.error(f"Error analyzing match for invoice {invoice_id}: {e}", exc_info=True)
            return self._failed(invoice_id, MatchingStage.ANALYZE, f"Match analysis failed: {e}", docs)

        # Stage 3: save the matching result
        try:
            matching_result = self.save_result(docs, verdict)
        except Exception as e:
            logger.error(f"Error saving matching result for invoice {invoice_id}: {e}", exc_info=True)
            return self._failed(invoice_id, MatchingStage.SAVE_RESULT, f"Could not save matching result: {e}", docs)

        # Stage 4: propagate statuses
        status_update_failures = []
        try:
            report = self.coordinator.apply(docs, verdict.matched)
            status_update_failures = report.failed
        except Exception as e:
            logger.error(f"Error updating document statuses for invoice {invoice_id}: {e}", exc_info=True)
            status_update_failures = ["all"]

        logger.info(f"Match completed for invoice {invoice_id}: matched={verdict.matched}")
        return MatchingRunResult(
            success=True,
            matched=verdict.matched,
            invoice_id=invoice_id,
            stage=MatchingStage.DONE,
            match_type=docs.match_type,
            result=MatchingResultResponse.model_validate(matching_result),
            analysis=verdict,
            status_update_failures=status_update_failures,
        )

    async def fetch_documents(self, invoice_id: str, allow_fuzzy: bool = False) -> Optional[ResolvedDocuments]:
        """
        Resolve the PO / BOL / invoice set. A stored fuzzy or manual link wins,
        then the exact PO number lookup; fuzzy linking only when ``allow_fuzzy``
        is set.

        Raises:
            ValueError: the invoice does not exist
        """
        invoice = self.store.get("invoice", invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")

        docs = self.exact_linker.resolve_stored_link(invoice)
        if docs is None:
            docs = self.exact_linker.resolve(invoice)
        if docs is None and allow_fuzzy:
            logger.info(f"Exact PO lookup failed for invoice {invoice_id}, trying fuzzy linking")
            docs = await self.fuzzy_linker.resolve(invoice)
        return docs

    def save_result(self, docs: ResolvedDocuments, verdict) -> MatchingResult:
        """Insert a new MatchingResult row. Earlier rows for the invoice are left untouched."""
        matching_result = MatchingResult(**build_result_fields(docs, verdict))
        self.store.insert("matching_result", matching_result)
        logger.info(
            f"Saved matching result {matching_result.id} for invoice {docs.invoice.id}: "
            f"{matching_result.match_status} (confidence: {matching_result.confidence_score:.2f})"
        )
        return matching_result

    async def fuzzy_link(self, invoice_id: str) -> FuzzyLinkResponse:
        """
        Manual fuzzy linking for an invoice, outside of a matching run.

        Raises:
            ValueError: the invoice does not exist
        """
        invoice = self.store.get("invoice", invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")

        docs = await self.fuzzy_linker.resolve(invoice)
        if docs is None:
            return FuzzyLinkResponse(invoice_id=invoice_id, linked=False)

        return FuzzyLinkResponse(
            invoice_id=invoice_id,
            linked=True,
            po_id=docs.po.id,
            po_number=docs.po.po_number,
            confidence=docs.match_confidence,
            bol_id=docs.bol.id if docs.bol else None,
            bol_number=docs.bol.bol_number if docs.bol else None,
            reasoning=docs.link_reasoning,
        )

    def _failed(self, invoice_id: str, stage: MatchingStage, error: str, docs: Optional[ResolvedDocuments] = None) -> MatchingRunResult:
        return MatchingRunResult(
            success=False,
            matched=False,
            invoice_id=invoice_id,
            stage=MatchingStage.FAILED,
            failed_stage=stage,
            match_type=docs.match_type if docs else None,
            error=error,
        )
