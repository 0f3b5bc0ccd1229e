from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from freight_recon.database import get_db
from freight_recon.errors import DuplicateDocumentError, InvalidStatusTransitionError, DocumentNotFoundError
from freight_recon.schemas.bol import BOLResponse, BOLCreate
from freight_recon.schemas.document import StatusUpdate
from freight_recon.services.document_service import DocumentService
from freight_recon.services.document_store import DocumentStore

router = APIRouter(prefix="/api/bills-of-lading", tags=["bills-of-lading"])


@router.get("", response_model=List[BOLResponse])
def list_bills_of_lading(
    status: Optional[str] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    return DocumentStore(db).list_documents("bill_of_lading", status=status, skip=skip, limit=limit)


@router.get("/by-number/{bol_number}", response_model=BOLResponse)
def get_bill_of_lading_by_number(bol_number: str, db: Session = Depends(get_db)):
    bol = DocumentStore(db).get_by_field("bill_of_lading", "bol_number", bol_number.strip())
    if not bol:
        raise HTTPException(status_code=404, detail="Bill of lading not found")
    return bol


@router.get("/{bol_id}", response_model=BOLResponse)
def get_bill_of_lading(bol_id: str, db: Session = Depends(get_db)):
    bol = DocumentStore(db).get("bill_of_lading", bol_id)
    if not bol:
        raise HTTPException(status_code=404, detail="Bill of lading not found")
    return bol


@router.post("", response_model=BOLResponse, status_code=201)
def create_bill_of_lading(bol_data: BOLCreate, db: Session = Depends(get_db)):
    """Record a bill of lading; a pending PO with the same number moves to bol_received"""
    try:
        return DocumentService(DocumentStore(db)).create_bill_of_lading(bol_data)
    except DuplicateDocumentError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/{bol_id}/status", response_model=BOLResponse)
def update_bill_of_lading_status(bol_id: str, update: StatusUpdate, db: Session = Depends(get_db)):
    try:
        return DocumentService(DocumentStore(db)).change_status("bill_of_lading", bol_id, update.status)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Bill of lading not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
