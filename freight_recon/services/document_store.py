"""
Document Store - typed persistence for purchase orders, bills of lading,
invoices, matching results and file metadata.

Every write is a single-row commit keyed by primary key. There is no
multi-row transaction: callers that update several documents do so one
row at a time.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from freight_recon.errors import DuplicateDocumentError
from freight_recon.models.file import File
from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.models.matching_result import MatchingResult

logger = logging.getLogger(__name__)

MODELS = {
    "file": File,
    "purchase_order": PurchaseOrder,
    "bill_of_lading": BillOfLading,
    "invoice": Invoice,
    "matching_result": MatchingResult,
}

# Business identifiers carrying a uniqueness constraint
BUSINESS_KEYS = {
    "purchase_order": "po_number",
    "bill_of_lading": "bol_number",
    "invoice": "invoice_number",
}


class DocumentStore:
    """Exact-value reads and single-row writes over a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def _model(self, kind: str):
        try:
            return MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown document kind: {kind}")

    def get(self, kind: str, id: str):
        """Fetch by primary key, or None"""
        model = self._model(kind)
        return self.db.query(model).filter(model.id == id).first()

    def get_by_field(self, kind: str, field: str, value: Any):
        """Fetch the first row whose ``field`` equals ``value``, or None"""
        model = self._model(kind)
        column = getattr(model, field)
        return self.db.query(model).filter(column == value).order_by(model.created_at.asc()).first()

    def list_by_status(self, kind: str, statuses: Iterable[str]) -> List[Any]:
        model = self._model(kind)
        return (
            self.db.query(model)
            .filter(model.status.in_(list(statuses)))
            .order_by(model.created_at.asc())
            .all()
        )

    def list_documents(self, kind: str, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Any]:
        model = self._model(kind)
        query = self.db.query(model)
        if status:
            query = query.filter(model.status == status)
        return query.order_by(model.created_at.desc()).offset(skip).limit(limit).all()

    def insert(self, kind: str, entity):
        """
        Persist a new entity.

        Raises:
            DuplicateDocumentError: the entity's business identifier already exists
        """
        self._model(kind)
        key_field = BUSINESS_KEYS.get(kind)
        if key_field and self.get_by_field(kind, key_field, getattr(entity, key_field)) is not None:
            raise DuplicateDocumentError(kind, key_field, getattr(entity, key_field))

        self.db.add(entity)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if key_field:
                raise DuplicateDocumentError(kind, key_field, getattr(entity, key_field)) from e
            raise
        self.db.refresh(entity)
        logger.info(f"Inserted {kind} {entity.id}")
        return entity

    def update_fields(self, kind: str, id: str, fields: Dict[str, Any]):
        """
        Update columns on one row and stamp ``updated_at``.

        Returns:
            The updated entity, or None when no row has this id
        """
        entity = self.get(kind, id)
        if entity is None:
            return None

        for name, value in fields.items():
            setattr(entity, name, value)
        if hasattr(entity, "updated_at"):
            entity.updated_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(entity)
        return entity

    # Matching results

    def latest_result_for_invoice(self, invoice_id: str) -> Optional[MatchingResult]:
        """The most recently created matching result is the current one"""
        return (
            self.db.query(MatchingResult)
            .filter(MatchingResult.invoice_id == invoice_id)
            .order_by(MatchingResult.created_at.desc())
            .first()
        )

    def results_for_invoice(self, invoice_id: str) -> List[MatchingResult]:
        return (
            self.db.query(MatchingResult)
            .filter(MatchingResult.invoice_id == invoice_id)
            .order_by(MatchingResult.created_at.desc())
            .all()
        )

    def list_results(self, skip: int = 0, limit: int = 100) -> List[MatchingResult]:
        return (
            self.db.query(MatchingResult)
            .order_by(MatchingResult.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def latest_results(self) -> List[MatchingResult]:
        """Current result per invoice"""
        latest = {}
        for result in self.db.query(MatchingResult).order_by(MatchingResult.created_at.asc()).all():
            latest[result.invoice_id] = result
        return list(latest.values())
