"""
Status Coordinator - applies a verdict to the lifecycle status of the PO,
the BOL (when present) and the invoice.

The store has no multi-row transaction, so each document is written on its
own. Writes are idempotent "set status" operations: failed writes are
retried on their own and never undo writes that already succeeded.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from freight_recon.services.document_store import DocumentStore
from freight_recon.services.exact_linker import ResolvedDocuments
from freight_recon.config import settings
from freight_recon.utils.lifecycle import MATCHED_OUTCOME, DISPUTED_OUTCOME

logger = logging.getLogger(__name__)


@dataclass
class StatusWrite:
    kind: str
    id: str
    fields: Dict[str, Any]

    @property
    def label(self) -> str:
        return f"{self.kind}:{self.id}"


@dataclass
class StatusUpdateReport:
    applied: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    attempts: int = 0

    @property
    def complete(self) -> bool:
        return not self.failed


def plan_status_writes(docs: ResolvedDocuments, matched: bool) -> List[StatusWrite]:
    """
    Status writes for a verdict.

    matched   -> PO matched,  BOL matched,  invoice matched
    unmatched -> PO disputed, BOL invoiced, invoice flagged
    """
    outcome = MATCHED_OUTCOME if matched else DISPUTED_OUTCOME

    writes = [StatusWrite("purchase_order", docs.po.id, {"status": outcome["purchase_order"]})]
    if docs.bol is not None:
        writes.append(StatusWrite("bill_of_lading", docs.bol.id, {"status": outcome["bill_of_lading"]}))

    invoice_fields = {
        "status": outcome["invoice"],
        "po_id": docs.po.id,
        "match_type": docs.match_type.value,
        "match_confidence": docs.match_confidence,
    }
    if docs.bol is not None:
        invoice_fields["bol_id"] = docs.bol.id
    writes.append(StatusWrite("invoice", docs.invoice.id, invoice_fields))
    return writes


class StatusCoordinator:
    def __init__(self, store: DocumentStore, max_retries: Optional[int] = None):
        self.store = store
        self.max_retries = settings.status_update_max_retries if max_retries is None else max_retries

    def apply(self, docs: ResolvedDocuments, matched: bool) -> StatusUpdateReport:
        """
        Move all documents to the outcome statuses for ``matched``.

        Returns:
            StatusUpdateReport listing applied and still-failed writes
        """
        report = StatusUpdateReport()
        pending = plan_status_writes(docs, matched)

        while pending and report.attempts <= self.max_retries:
            report.attempts += 1
            still_failing = []
            for write in pending:
                if self._write(write):
                    report.applied.append(write.label)
                else:
                    still_failing.append(write)
            pending = still_failing
            if pending and report.attempts <= self.max_retries:
                logger.warning(
                    f"Retrying {len(pending)} status update(s) for invoice {docs.invoice.id} "
                    f"(attempt {report.attempts + 1})"
                )

        report.failed = [write.label for write in pending]
        if report.failed:
            logger.error(f"Status updates failed for invoice {docs.invoice.id}: {', '.join(report.failed)}")
        else:
            logger.info(f"Updated {len(report.applied)} document status(es) for invoice {docs.invoice.id}")
        return report

    def _write(self, write: StatusWrite) -> bool:
        try:
            updated = self.store.update_fields(write.kind, write.id, write.fields)
        except Exception as e:
            logger.error(f"Error updating {write.label}: {e}", exc_info=True)
            return False
        if updated is None:
            logger.error(f"{write.label} not found while updating status")
            return False
        return True
