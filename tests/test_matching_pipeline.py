"""
End-to-end matching runs against the in-memory database with a scripted oracle.
"""

from unittest.mock import patch

import pytest

from conftest import StubOracle, detention_verdict
from freight_recon.errors import OracleResponseError
from freight_recon.schemas.matching import MatchingStage, MatchType, RankingVerdict
from freight_recon.services.document_service import DocumentService
from freight_recon.services.matching_job import run_matching_job
from freight_recon.services.matching_pipeline import MatchingPipeline, NO_PO_ERROR


@pytest.mark.asyncio
async def test_perfect_two_way_match(db, store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice()

    result = await MatchingPipeline(db, oracle=StubOracle()).run(invoice.id)

    assert result.success and result.matched
    assert result.stage == MatchingStage.DONE
    assert result.match_type == MatchType.EXACT
    assert result.result.match_status == "perfect_match"
    assert result.result.confidence_score == pytest.approx(1.0)
    assert result.result.flags_count == 0
    assert result.result.id.startswith("m_")
    assert store.get("purchase_order", po.id).status == "matched"
    assert store.get("invoice", invoice.id).status == "matched"


@pytest.mark.asyncio
async def test_unexpected_detention_charge(db, store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice(
        charges=[
            {"description": "Linehaul", "amount": 450.0},
            {"description": "Fuel", "amount": 50.0},
            {"description": "Detention", "amount": 150.0},
        ],
        total=650,
    )

    result = await MatchingPipeline(db, oracle=StubOracle(analysis=detention_verdict())).run(invoice.id)

    assert result.success and not result.matched
    assert result.analysis.discrepancies[0].field == "Detention"
    assert "unexpected charge" in result.analysis.discrepancies[0].issue.lower()
    assert result.result.match_status == "major_variance"
    assert store.get("purchase_order", po.id).status == "disputed"
    assert store.get("invoice", invoice.id).status == "flagged"


@pytest.mark.asyncio
async def test_three_way_match_updates_bol(db, store, make_po, make_bol, make_invoice):
    make_po()
    bol = make_bol()
    invoice = make_invoice()

    result = await MatchingPipeline(db, oracle=StubOracle()).run(invoice.id)

    assert result.result.bol_id == bol.id
    assert store.get("bill_of_lading", bol.id).status == "matched"


@pytest.mark.asyncio
async def test_unknown_po_creates_no_result_and_changes_nothing(db, store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice(po_number="PO-9999")
    oracle = StubOracle()

    result = await MatchingPipeline(db, oracle=oracle).run(invoice.id)

    assert result.success is False
    assert result.matched is False
    assert result.error == NO_PO_ERROR
    assert result.failed_stage == MatchingStage.FETCH_DOCUMENTS
    assert store.results_for_invoice(invoice.id) == []
    assert store.get("purchase_order", po.id).status == "pending"
    assert store.get("invoice", invoice.id).status == "pending"
    assert oracle.analyze_calls == []


@pytest.mark.asyncio
async def test_fuzzy_fallback_links_typo_po(db, store, make_po, make_invoice):
    po = make_po("PO-1001")
    invoice = make_invoice(po_number="PO10O1")
    oracle = StubOracle(rankings=[RankingVerdict(best_candidate_index=0, confidence=0.85, reasoning="typo")])

    result = await MatchingPipeline(db, oracle=oracle, fuzzy_fallback=True).run(invoice.id)

    assert result.success
    assert result.match_type == MatchType.FUZZY
    assert result.result.po_id == po.id
    stored = store.get("invoice", invoice.id)
    assert stored.match_type == "fuzzy"
    assert stored.status == "matched"


@pytest.mark.asyncio
async def test_low_confidence_fuzzy_link_leaves_invoice_unresolved(db, store, make_po, make_invoice):
    make_po("PO-1001")
    invoice = make_invoice(po_number="PO10O1")
    oracle = StubOracle(rankings=[RankingVerdict(best_candidate_index=0, confidence=0.4, reasoning="weak")])

    result = await MatchingPipeline(db, oracle=oracle, fuzzy_fallback=True).run(invoice.id)

    assert result.success is False
    assert result.error == NO_PO_ERROR
    assert store.results_for_invoice(invoice.id) == []
    assert store.get("invoice", invoice.id).po_id is None


@pytest.mark.asyncio
async def test_fuzzy_fallback_is_off_by_default(db, make_po, make_invoice):
    make_po("PO-1001")
    invoice = make_invoice(po_number="PO10O1")
    oracle = StubOracle(rankings=[RankingVerdict(best_candidate_index=0, confidence=0.95)])

    result = await MatchingPipeline(db, oracle=oracle).run(invoice.id)

    assert result.error == NO_PO_ERROR
    assert oracle.rank_calls == []


@pytest.mark.asyncio
async def test_oracle_failure_aborts_without_result(db, store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice()
    oracle = StubOracle(analyze_error=OracleResponseError("Oracle reply is not valid JSON"))

    result = await MatchingPipeline(db, oracle=oracle).run(invoice.id)

    assert result.success is False
    assert result.failed_stage == MatchingStage.ANALYZE
    assert result.error.startswith("Match analysis failed")
    assert store.results_for_invoice(invoice.id) == []
    assert store.get("purchase_order", po.id).status == "pending"


@pytest.mark.asyncio
async def test_missing_invoice(db):
    result = await MatchingPipeline(db, oracle=StubOracle()).run("inv_missing")
    assert result.success is False
    assert result.failed_stage == MatchingStage.FETCH_DOCUMENTS


@pytest.mark.asyncio
async def test_rerun_keeps_history_and_latest_is_current(db, store, make_po, make_invoice):
    make_po()
    invoice = make_invoice()

    first = await MatchingPipeline(db, oracle=StubOracle(analysis=detention_verdict())).run(invoice.id)
    second = await MatchingPipeline(db, oracle=StubOracle()).run(invoice.id)

    history = store.results_for_invoice(invoice.id)
    assert len(history) == 2
    assert store.latest_result_for_invoice(invoice.id).id == second.result.id
    assert first.result.id != second.result.id


@pytest.mark.asyncio
async def test_manual_fuzzy_link(db, store, make_po, make_invoice):
    po = make_po("PO-1001")
    invoice = make_invoice(po_number="PO10O1")
    oracle = StubOracle(rankings=[RankingVerdict(best_candidate_index=0, confidence=0.9, reasoning="typo")])

    response = await MatchingPipeline(db, oracle=oracle).fuzzy_link(invoice.id)

    assert response.linked
    assert response.po_number == "PO-1001"
    assert response.confidence == 0.9
    assert store.get("invoice", invoice.id).po_id == po.id


@pytest.mark.asyncio
async def test_background_job_uses_its_own_session(session_factory, store, make_po, make_invoice):
    make_po()
    invoice = make_invoice()

    result = await run_matching_job(invoice.id, oracle=StubOracle(), session_factory=session_factory)

    assert result.success
    assert store.latest_result_for_invoice(invoice.id) is not None


@pytest.mark.asyncio
async def test_background_job_never_raises():
    def broken_session_factory():
        raise RuntimeError("database down")

    result = await run_matching_job("inv_x", oracle=StubOracle(), session_factory=broken_session_factory)

    assert result.success is False
    assert result.stage == MatchingStage.FAILED
    assert "database down" in result.error


@pytest.mark.asyncio
async def test_run_after_fuzzy_link_uses_the_stored_link(db, store, make_po, make_invoice):
    po = make_po("PO-1001")
    invoice = make_invoice(po_number="PO10O1")
    oracle = StubOracle(rankings=[RankingVerdict(best_candidate_index=0, confidence=0.85, reasoning="typo")])
    pipeline = MatchingPipeline(db, oracle=oracle)

    link = await pipeline.fuzzy_link(invoice.id)
    result = await pipeline.run(invoice.id)

    assert link.linked
    assert result.success and result.matched
    assert result.match_type == MatchType.FUZZY
    assert result.result.po_id == po.id
    stored = store.get("invoice", invoice.id)
    assert stored.match_type == "fuzzy"
    assert stored.match_confidence == pytest.approx(0.85)
    assert stored.status == "matched"
    assert len(oracle.rank_calls) == 1


@pytest.mark.asyncio
async def test_run_after_manual_link_keeps_manual_match_type(db, store, make_po, make_bol, make_invoice):
    po = make_po("PO-1001")
    bol = make_bol(po_number="PO-1001")
    invoice = make_invoice(po_number="UNKNOWN")
    DocumentService(store).link_manually(invoice.id, po.id)

    result = await MatchingPipeline(db, oracle=StubOracle()).run(invoice.id)

    assert result.success
    assert result.match_type == MatchType.MANUAL
    assert result.result.po_id == po.id
    assert result.result.bol_id == bol.id
    stored = store.get("invoice", invoice.id)
    assert stored.match_type == "manual"
    assert stored.bol_id == bol.id
    assert store.get("purchase_order", po.id).status == "matched"


@pytest.mark.asyncio
async def test_save_failure_aborts_without_status_changes(db, store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice()
    pipeline = MatchingPipeline(db, oracle=StubOracle())

    with patch.object(pipeline.store, "insert", side_effect=RuntimeError("disk full")):
        result = await pipeline.run(invoice.id)

    assert result.success is False
    assert result.stage == MatchingStage.FAILED
    assert result.failed_stage == MatchingStage.SAVE_RESULT
    assert "disk full" in result.error
    assert store.results_for_invoice(invoice.id) == []
    assert store.get("purchase_order", po.id).status == "pending"
    assert store.get("invoice", invoice.id).status == "pending"


@pytest.mark.asyncio
async def test_status_update_failure_keeps_the_saved_result(db, store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice()
    pipeline = MatchingPipeline(db, oracle=StubOracle())

    with patch.object(pipeline.store, "update_fields", side_effect=RuntimeError("lock timeout")):
        result = await pipeline.run(invoice.id)

    assert result.success is True
    assert result.stage == MatchingStage.DONE
    assert result.status_update_failures
    assert f"invoice:{invoice.id}" in result.status_update_failures
    assert store.latest_result_for_invoice(invoice.id).id == result.result.id
    assert store.get("purchase_order", po.id).status == "pending"
