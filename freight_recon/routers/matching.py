"""
Matching API router - runs 3-way matching for invoices and serves results.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, BackgroundTasks
from sqlalchemy.orm import Session

from freight_recon.database import get_db
from freight_recon.schemas.matching import (
    FuzzyLinkResponse,
    MatchingResultResponse,
    MatchingRunResult,
    MatchingSummary,
    MatchStatus,
)
from freight_recon.services.comparison_oracle import ComparisonOracle, get_oracle
from freight_recon.services.document_store import DocumentStore
from freight_recon.services.matching_job import schedule_matching
from freight_recon.services.matching_pipeline import MatchingPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/matching", tags=["matching"])


def _require_invoice(db: Session, invoice_id: str):
    invoice = DocumentStore(db).get("invoice", invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.get("/results", response_model=List[MatchingResultResponse])
def list_matching_results(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """All matching results, newest first (including superseded runs)"""
    return DocumentStore(db).list_results(skip=skip, limit=limit)


@router.get("/summary", response_model=MatchingSummary)
def get_matching_summary(db: Session = Depends(get_db)):
    """Dashboard counts over invoice statuses and the current result per invoice"""
    store = DocumentStore(db)
    invoices = store.list_documents("invoice", limit=None)
    current = store.latest_results()

    def invoices_in(status: str) -> int:
        return sum(1 for invoice in invoices if invoice.status == status)

    def results_with(status: MatchStatus) -> int:
        return sum(1 for result in current if result.match_status == status.value)

    return MatchingSummary(
        total_invoices=len(invoices),
        pending_invoices=invoices_in("pending"),
        matched_invoices=invoices_in("matched"),
        flagged_invoices=invoices_in("flagged"),
        approved_invoices=invoices_in("approved"),
        perfect_matches=results_with(MatchStatus.PERFECT_MATCH),
        minor_variances=results_with(MatchStatus.MINOR_VARIANCE),
        major_variances=results_with(MatchStatus.MAJOR_VARIANCE),
        three_way_matches=sum(1 for result in current if result.bol_id),
        two_way_matches=sum(1 for result in current if not result.bol_id),
    )


@router.get("/invoices/{invoice_id}/latest", response_model=MatchingResultResponse)
def get_latest_result(invoice_id: str, db: Session = Depends(get_db)):
    """The current (most recent) matching result for an invoice"""
    _require_invoice(db, invoice_id)
    result = DocumentStore(db).latest_result_for_invoice(invoice_id)
    if not result:
        raise HTTPException(status_code=404, detail="No matching result for this invoice")
    return result


@router.get("/invoices/{invoice_id}/history", response_model=List[MatchingResultResponse])
def get_result_history(invoice_id: str, db: Session = Depends(get_db)):
    _require_invoice(db, invoice_id)
    return DocumentStore(db).results_for_invoice(invoice_id)


@router.post("/{invoice_id}/run", status_code=202)
def run_matching(
    invoice_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    oracle: ComparisonOracle = Depends(get_oracle),
):
    """Queue a matching run; poll the latest result for the outcome"""
    _require_invoice(db, invoice_id)
    schedule_matching(background_tasks, invoice_id, oracle)
    return {"invoice_id": invoice_id, "status": "scheduled"}


@router.post("/{invoice_id}/run-sync", response_model=MatchingRunResult)
async def run_matching_sync(
    invoice_id: str,
    allow_fuzzy: Optional[bool] = Query(None, description="Override the fuzzy fallback setting"),
    db: Session = Depends(get_db),
    oracle: ComparisonOracle = Depends(get_oracle),
):
    """Run matching inline and return the structured run outcome"""
    _require_invoice(db, invoice_id)
    return await MatchingPipeline(db, oracle=oracle).run(invoice_id, allow_fuzzy=allow_fuzzy)


@router.post("/{invoice_id}/fuzzy-link", response_model=FuzzyLinkResponse)
async def fuzzy_link_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    oracle: ComparisonOracle = Depends(get_oracle),
):
    """Link an invoice to its most plausible unmatched PO (and BOL) without running analysis"""
    _require_invoice(db, invoice_id)
    return await MatchingPipeline(db, oracle=oracle).fuzzy_link(invoice_id)
