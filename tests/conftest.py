"""
Shared fixtures: an in-memory SQLite database, document factories and a
scripted comparison oracle.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from freight_recon.database import Base
import freight_recon.models  # noqa: F401
from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.schemas.matching import AnalysisVerdict, RankingVerdict
from freight_recon.services.comparison_oracle import ComparisonOracle
from freight_recon.services.document_store import DocumentStore


class StubOracle(ComparisonOracle):
    """Deterministic oracle returning scripted verdicts and recording its calls"""

    def __init__(
        self,
        analysis: Optional[AnalysisVerdict] = None,
        rankings: Optional[List[RankingVerdict]] = None,
        rank_error: Optional[Exception] = None,
        analyze_error: Optional[Exception] = None,
    ):
        self.analysis = analysis or perfect_verdict()
        self.rankings = list(rankings or [])
        self.rank_error = rank_error
        self.analyze_error = analyze_error
        self.rank_calls = []
        self.analyze_calls = []

    async def rank(self, anchor, candidates, context=()):
        self.rank_calls.append((anchor, list(candidates), list(context)))
        if self.rank_error:
            raise self.rank_error
        if not self.rankings:
            return RankingVerdict(best_candidate_index=-1, confidence=0.0, reasoning="No candidate fits")
        return self.rankings.pop(0)

    async def analyze(self, po, bol, invoice):
        self.analyze_calls.append((po, bol, invoice))
        if self.analyze_error:
            raise self.analyze_error
        return self.analysis


def perfect_verdict() -> AnalysisVerdict:
    return AnalysisVerdict(
        matched=True,
        confidence=1.0,
        variance_amount=0.0,
        variance_percentage=0.0,
        reasoning="All documents agree",
        discrepancies=[],
    )


def detention_verdict() -> AnalysisVerdict:
    return AnalysisVerdict(
        matched=False,
        confidence=0.9,
        variance_amount=150.0,
        variance_percentage=30.0,
        reasoning="Invoice bills a detention charge that the PO does not authorize",
        discrepancies=[{
            "field": "Detention",
            "po_value": None,
            "invoice_value": 150.0,
            "issue": "Unexpected charge not on PO, significant amount",
        }],
    )


STANDARD_CHARGES = [
    {"description": "Linehaul", "amount": 450.0},
    {"description": "Fuel", "amount": 50.0},
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return DocumentStore(db)


@pytest.fixture
def make_po(store):
    def _make(po_number="PO-1001", charges=None, total=Decimal("500.00"), status="pending", **overrides):
        fields = dict(
            po_number=po_number,
            customer_name="Acme Retail",
            carrier_name="Swift Logistics",
            origin="Chicago, IL",
            destination="Dallas, TX",
            pickup_date=date(2026, 3, 2),
            delivery_date=date(2026, 3, 4),
            expected_charges=STANDARD_CHARGES if charges is None else charges,
            total_amount=total,
            status=status,
        )
        fields.update(overrides)
        return store.insert("purchase_order", PurchaseOrder(**fields))
    return _make


@pytest.fixture
def make_bol(store):
    def _make(bol_number="BOL-5001", po_number="PO-1001", charges=None, status="pending", **overrides):
        fields = dict(
            bol_number=bol_number,
            po_number=po_number,
            carrier_name="Swift Logistics",
            origin="Chicago, IL",
            destination="Dallas, TX",
            pickup_date=date(2026, 3, 2),
            delivery_date=date(2026, 3, 4),
            weight_lbs=12000.0,
            item_description="Palletized housewares",
            actual_charges=charges,
            status=status,
        )
        fields.update(overrides)
        return store.insert("bill_of_lading", BillOfLading(**fields))
    return _make


@pytest.fixture
def make_invoice(store):
    def _make(invoice_number="INV-1", po_number="PO-1001", charges=None, total=Decimal("500.00"), **overrides):
        fields = dict(
            invoice_number=invoice_number,
            carrier_name="Swift Logistics",
            invoice_date=date(2026, 3, 5),
            po_number=po_number,
            charges=STANDARD_CHARGES if charges is None else charges,
            total_amount=total,
            payment_terms="NET 30",
            status="pending",
        )
        fields.update(overrides)
        return store.insert("invoice", Invoice(**fields))
    return _make
