"""
HTTP surface tests through FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import StubOracle, detention_verdict
from freight_recon.database import get_db
from freight_recon.main import app
from freight_recon.schemas.matching import RankingVerdict
from freight_recon.services import matching_job
from freight_recon.services.comparison_oracle import get_oracle
from freight_recon.services.storage_service import StorageService, get_storage_service

PO_PAYLOAD = {
    "po_number": "PO-1001",
    "customer_name": "Acme Retail",
    "carrier_name": "Swift Logistics",
    "origin": "Chicago, IL",
    "destination": "Dallas, TX",
    "expected_charges": [
        {"description": "Linehaul", "amount": 450},
        {"description": "Fuel", "amount": 50},
    ],
}

INVOICE_PAYLOAD = {
    "invoice_number": "INV-1",
    "carrier_name": "Swift Logistics",
    "po_number": "PO-1001",
    "charges": [
        {"description": "Linehaul", "amount": 450},
        {"description": "Fuel", "amount": 50},
    ],
}


@pytest.fixture
def oracle():
    return StubOracle()


@pytest.fixture
def client(session_factory, oracle, monkeypatch, tmp_path):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    storage = StorageService(local_storage_dir=str(tmp_path))
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_oracle] = lambda: oracle
    app.dependency_overrides[get_storage_service] = lambda: storage
    monkeypatch.setattr(matching_job, "SessionLocal", session_factory)

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_po_defaults_total_and_rejects_duplicates(client):
    response = client.post("/api/purchase-orders", json=PO_PAYLOAD)
    assert response.status_code == 201
    body = response.json()
    assert body["id"].startswith("po_")
    assert float(body["total_amount"]) == 500.0
    assert body["status"] == "pending"

    duplicate = client.post("/api/purchase-orders", json=PO_PAYLOAD)
    assert duplicate.status_code == 409


def test_get_po_by_id_and_number(client):
    po = client.post("/api/purchase-orders", json=PO_PAYLOAD).json()

    assert client.get(f"/api/purchase-orders/{po['id']}").json()["po_number"] == "PO-1001"
    assert client.get("/api/purchase-orders/by-number/PO-1001").json()["id"] == po["id"]
    assert client.get("/api/purchase-orders/po_missing").status_code == 404


def test_bol_arrival_moves_po_to_bol_received(client):
    po = client.post("/api/purchase-orders", json=PO_PAYLOAD).json()
    response = client.post("/api/bills-of-lading", json={
        "bol_number": "BOL-5001",
        "po_number": "PO-1001",
        "carrier_name": "Swift Logistics",
        "origin": "Chicago, IL",
        "destination": "Dallas, TX",
    })

    assert response.status_code == 201
    assert response.json()["id"].startswith("bol_")
    assert client.get(f"/api/purchase-orders/{po['id']}").json()["status"] == "bol_received"


def test_creating_invoice_runs_matching_in_background(client):
    client.post("/api/purchase-orders", json=PO_PAYLOAD)

    response = client.post("/api/invoices", json=INVOICE_PAYLOAD)
    assert response.status_code == 201
    invoice = response.json()
    assert invoice["status"] == "pending"

    # TestClient completes background tasks before returning
    stored = client.get(f"/api/invoices/{invoice['id']}").json()
    assert stored["status"] == "matched"
    assert stored["match_type"] == "exact"

    latest = client.get(f"/api/matching/invoices/{invoice['id']}/latest").json()
    assert latest["match_status"] == "perfect_match"
    assert latest["flags_count"] == 0


def test_invoice_without_matching(client, oracle):
    client.post("/api/purchase-orders", json=PO_PAYLOAD)
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "run_matching": False}).json()

    assert client.get(f"/api/invoices/{invoice['id']}").json()["status"] == "pending"
    assert oracle.analyze_calls == []
    assert client.get(f"/api/matching/invoices/{invoice['id']}/latest").status_code == 404


def test_run_sync_reports_missing_po(client):
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "po_number": "PO-9999"}).json()

    response = client.post(f"/api/matching/{invoice['id']}/run-sync")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Could not find related PO for invoice"
    assert client.get("/api/matching/results").json() == []


def test_run_sync_flags_invoice_and_dispute(client, oracle):
    client.post("/api/purchase-orders", json=PO_PAYLOAD)
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "run_matching": False}).json()
    oracle.analysis = detention_verdict()

    body = client.post(f"/api/matching/{invoice['id']}/run-sync").json()
    assert body["success"] is True
    assert body["matched"] is False
    assert body["result"]["match_status"] == "major_variance"

    response = client.post(f"/api/invoices/{invoice['id']}/dispute", json={"notes": "Detention not authorized"})
    assert response.status_code == 200
    assert response.json()["status"] == "disputed"
    assert response.json()["approval_notes"] == "Detention not authorized"


def test_approve_requires_a_verdict(client):
    client.post("/api/purchase-orders", json=PO_PAYLOAD)
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "run_matching": False}).json()

    response = client.post(f"/api/invoices/{invoice['id']}/approve")
    assert response.status_code == 400

    client.post(f"/api/matching/{invoice['id']}/run-sync")
    approved = client.post(f"/api/invoices/{invoice['id']}/approve", json={"user_identifier": "ap@acme.test"})
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["approved_by"] == "ap@acme.test"
    assert approved.json()["approved_at"] is not None


def test_patch_status_validates_transition(client):
    po = client.post("/api/purchase-orders", json=PO_PAYLOAD).json()

    assert client.patch(f"/api/purchase-orders/{po['id']}/status", json={"status": "invoiced"}).status_code == 200
    assert client.patch(f"/api/purchase-orders/{po['id']}/status", json={"status": "pending"}).status_code == 400


def test_summary_counts_current_results(client, oracle):
    client.post("/api/purchase-orders", json=PO_PAYLOAD)
    invoice = client.post("/api/invoices", json=INVOICE_PAYLOAD).json()
    client.post(f"/api/matching/{invoice['id']}/run-sync")

    summary = client.get("/api/matching/summary").json()

    assert summary["total_invoices"] == 1
    assert summary["matched_invoices"] == 1
    assert summary["perfect_matches"] == 1
    assert summary["two_way_matches"] == 1
    assert summary["three_way_matches"] == 0
    assert len(client.get(f"/api/matching/invoices/{invoice['id']}/history").json()) == 2


def test_fuzzy_link_endpoint(client, oracle):
    po = client.post("/api/purchase-orders", json=PO_PAYLOAD).json()
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "po_number": "PO10O1", "run_matching": False}).json()
    oracle.rankings = [RankingVerdict(best_candidate_index=0, confidence=0.85, reasoning="typo")]

    body = client.post(f"/api/matching/{invoice['id']}/fuzzy-link").json()

    assert body["linked"] is True
    assert body["po_id"] == po["id"]
    assert client.get(f"/api/invoices/{invoice['id']}").json()["match_type"] == "fuzzy"


def test_file_upload_round_trip(client):
    response = client.post(
        "/api/files",
        files={"file": ("pod.pdf", b"%PDF-1.4 signed", "application/pdf")},
        data={"file_type": "pod"},
    )
    assert response.status_code == 201
    record = response.json()
    assert record["id"].startswith("f_")
    assert record["storage_path"].startswith("pods/")
    assert record["size_bytes"] == len(b"%PDF-1.4 signed")

    content = client.get(f"/api/files/{record['id']}/content")
    assert content.content == b"%PDF-1.4 signed"


def test_file_upload_rejects_unknown_type(client):
    response = client.post(
        "/api/files",
        files={"file": ("x.pdf", b"data", "application/pdf")},
        data={"file_type": "spreadsheet"},
    )
    assert response.status_code == 400


def test_manual_link(client):
    po = client.post("/api/purchase-orders", json=PO_PAYLOAD).json()
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "po_number": "UNKNOWN", "run_matching": False}).json()

    response = client.post(f"/api/invoices/{invoice['id']}/link", json={"po_id": po["id"]})
    assert response.status_code == 200
    assert response.json()["po_id"] == po["id"]
    assert response.json()["match_type"] == "manual"

    missing = client.post(f"/api/invoices/{invoice['id']}/link", json={"po_id": "po_missing"})
    assert missing.status_code == 404


def test_run_sync_after_manual_link(client):
    po = client.post("/api/purchase-orders", json=PO_PAYLOAD).json()
    invoice = client.post("/api/invoices", json={**INVOICE_PAYLOAD, "po_number": "UNKNOWN", "run_matching": False}).json()
    client.post(f"/api/invoices/{invoice['id']}/link", json={"po_id": po["id"]})

    body = client.post(f"/api/matching/{invoice['id']}/run-sync").json()

    assert body["success"] is True
    assert body["match_type"] == "manual"
    assert body["result"]["po_id"] == po["id"]
    assert client.get(f"/api/invoices/{invoice['id']}").json()["match_type"] == "manual"
