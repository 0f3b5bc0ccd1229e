from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from freight_recon.database import get_db
from freight_recon.errors import DuplicateDocumentError, InvalidStatusTransitionError, DocumentNotFoundError
from freight_recon.schemas.document import StatusUpdate
from freight_recon.schemas.invoice import InvoiceResponse, InvoiceCreate, DecisionCreate, DecisionRequest, ManualLinkRequest
from freight_recon.services.comparison_oracle import ComparisonOracle, get_oracle
from freight_recon.services.document_service import DocumentService
from freight_recon.services.document_store import DocumentStore
from freight_recon.services.matching_job import schedule_matching

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.get("", response_model=List[InvoiceResponse])
def list_invoices(
    status: Optional[str] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """List invoices with optional status filter"""
    return DocumentStore(db).list_documents("invoice", status=status, skip=skip, limit=limit)


@router.get("/by-number/{invoice_number}", response_model=InvoiceResponse)
def get_invoice_by_number(invoice_number: str, db: Session = Depends(get_db)):
    invoice = DocumentStore(db).get_by_field("invoice", "invoice_number", invoice_number.strip())
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    invoice = DocumentStore(db).get("invoice", invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.post("", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    invoice_data: InvoiceCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    oracle: ComparisonOracle = Depends(get_oracle),
):
    """
    Record a carrier invoice. Matching runs in the background after the
    response is sent, so the invoice comes back still pending.
    """
    try:
        invoice = DocumentService(DocumentStore(db)).create_invoice(invoice_data)
    except DuplicateDocumentError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if invoice_data.run_matching:
        schedule_matching(background_tasks, invoice.id, oracle)
    return invoice


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
def update_invoice_status(invoice_id: str, update: StatusUpdate, db: Session = Depends(get_db)):
    try:
        return DocumentService(DocumentStore(db)).change_status("invoice", invoice_id, update.status)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Invoice not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _decide(invoice_id: str, outcome: str, request: Optional[DecisionRequest], db: Session):
    request = request or DecisionRequest()
    decision = DecisionCreate(decision=outcome, notes=request.notes, user_identifier=request.user_identifier)
    try:
        return DocumentService(DocumentStore(db)).decide_invoice(invoice_id, decision)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Invoice not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{invoice_id}/approve", response_model=InvoiceResponse)
def approve_invoice(invoice_id: str, request: Optional[DecisionRequest] = None, db: Session = Depends(get_db)):
    """Approve a matched or flagged invoice for payment"""
    return _decide(invoice_id, "approved", request, db)


@router.post("/{invoice_id}/dispute", response_model=InvoiceResponse)
def dispute_invoice(invoice_id: str, request: Optional[DecisionRequest] = None, db: Session = Depends(get_db)):
    return _decide(invoice_id, "disputed", request, db)


@router.post("/{invoice_id}/reject", response_model=InvoiceResponse)
def reject_invoice(invoice_id: str, request: Optional[DecisionRequest] = None, db: Session = Depends(get_db)):
    return _decide(invoice_id, "rejected", request, db)


@router.post("/{invoice_id}/link", response_model=InvoiceResponse)
def link_invoice(invoice_id: str, link: ManualLinkRequest, db: Session = Depends(get_db)):
    """Record a manual PO / BOL link for an invoice the linkers could not resolve"""
    try:
        return DocumentService(DocumentStore(db)).link_manually(invoice_id, link.po_id, link.bol_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
