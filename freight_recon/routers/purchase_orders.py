from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from freight_recon.database import get_db
from freight_recon.errors import DuplicateDocumentError, InvalidStatusTransitionError, DocumentNotFoundError
from freight_recon.schemas.document import StatusUpdate
from freight_recon.schemas.po import POResponse, POCreate
from freight_recon.services.document_service import DocumentService
from freight_recon.services.document_store import DocumentStore

router = APIRouter(prefix="/api/purchase-orders", tags=["purchase-orders"])


@router.get("", response_model=List[POResponse])
def list_purchase_orders(
    status: Optional[str] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """List purchase orders, newest first"""
    return DocumentStore(db).list_documents("purchase_order", status=status, skip=skip, limit=limit)


@router.get("/by-number/{po_number}", response_model=POResponse)
def get_purchase_order_by_number(po_number: str, db: Session = Depends(get_db)):
    po = DocumentStore(db).get_by_field("purchase_order", "po_number", po_number.strip())
    if not po:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return po


@router.get("/{po_id}", response_model=POResponse)
def get_purchase_order(po_id: str, db: Session = Depends(get_db)):
    po = DocumentStore(db).get("purchase_order", po_id)
    if not po:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return po


@router.post("", response_model=POResponse, status_code=201)
def create_purchase_order(po_data: POCreate, db: Session = Depends(get_db)):
    """Create a new purchase order"""
    try:
        return DocumentService(DocumentStore(db)).create_purchase_order(po_data)
    except DuplicateDocumentError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/{po_id}/status", response_model=POResponse)
def update_purchase_order_status(po_id: str, update: StatusUpdate, db: Session = Depends(get_db)):
    """Manual status change, validated against the PO lifecycle"""
    try:
        return DocumentService(DocumentStore(db)).change_status("purchase_order", po_id, update.status)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
