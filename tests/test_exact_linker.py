"""
Tests for exact document resolution.
"""

from freight_recon.schemas.matching import MatchType
from freight_recon.services.exact_linker import ExactLinker, clean_reference


def test_resolves_po_and_bol_by_po_number(store, make_po, make_bol, make_invoice):
    po = make_po()
    bol = make_bol()
    invoice = make_invoice()

    docs = ExactLinker(store).resolve(invoice)

    assert docs.po.id == po.id
    assert docs.bol.id == bol.id
    assert docs.invoice.id == invoice.id
    assert docs.match_type == MatchType.EXACT
    assert docs.is_three_way


def test_two_way_when_no_bol(store, make_po, make_invoice):
    make_po()
    docs = ExactLinker(store).resolve(make_invoice())
    assert docs.bol is None
    assert not docs.is_three_way


def test_falls_back_to_invoice_bol_number(store, make_po, make_bol, make_invoice):
    make_po()
    bol = make_bol(po_number="PO-OTHER")
    docs = ExactLinker(store).resolve(make_invoice(bol_number="BOL-5001"))
    assert docs.bol.id == bol.id


def test_unknown_po_number_is_unresolved(store, make_po, make_invoice):
    make_po()
    assert ExactLinker(store).resolve(make_invoice(po_number="PO-9999")) is None


def test_reference_whitespace_is_ignored(store, make_po, make_invoice):
    po = make_po()
    docs = ExactLinker(store).resolve(make_invoice(po_number="  PO-1001 "))
    assert docs.po.id == po.id


def test_resolution_is_repeatable(store, make_po, make_bol, make_invoice):
    make_po()
    make_bol()
    invoice = make_invoice()
    linker = ExactLinker(store)

    first = linker.resolve(invoice)
    second = linker.resolve(invoice)

    assert (first.po.id, first.bol.id, first.invoice.id) == (second.po.id, second.bol.id, second.invoice.id)


def test_clean_reference():
    assert clean_reference("  ") is None
    assert clean_reference(None) is None
    assert clean_reference(" BOL-1 ") == "BOL-1"


def test_stored_fuzzy_link_is_resolved_by_id(store, make_po, make_bol, make_invoice):
    po = make_po("PO-1001")
    bol = make_bol(bol_number="BOL-7", po_number="PO-1001")
    invoice = make_invoice(
        po_number="PO10O1", po_id=po.id, bol_id=bol.id, match_type="fuzzy", match_confidence=0.82,
    )

    docs = ExactLinker(store).resolve_stored_link(invoice)

    assert docs.po.id == po.id
    assert docs.bol.id == bol.id
    assert docs.match_type == MatchType.FUZZY
    assert docs.match_confidence == 0.82


def test_exact_links_are_not_treated_as_stored(store, make_po, make_invoice):
    po = make_po()
    invoice = make_invoice(po_id=po.id, match_type="exact", match_confidence=1.0)

    assert ExactLinker(store).resolve_stored_link(invoice) is None
