"""
Match Analyzer - obtains a verdict for a resolved PO / BOL / invoice set from
the comparison oracle and normalizes it into the persisted comparison schema.

The matched / not-matched decision belongs to the oracle. Everything after
the oracle call is pure: the same verdict always yields the same comparison.
"""
import logging
import re
from typing import List, Optional

from freight_recon.schemas.matching import (
    AnalysisVerdict,
    ChargeComparison,
    Discrepancy,
    MatchComparison,
    MatchStatus,
)
from freight_recon.services.comparison_oracle import ComparisonOracle
from freight_recon.services.document_projection import project, ComparableDocument
from freight_recon.services.exact_linker import ResolvedDocuments
from freight_recon.utils.matching_rules import (
    amounts_equal,
    index_charges,
    money_to_float,
    normalize_description,
    to_money,
)

logger = logging.getLogger(__name__)

_SIGNIFICANT = re.compile(r"\bsignificant\b", re.IGNORECASE)
_EXTRA_MARKERS = ("unexpected", "extra", "not on po", "not on the po", "not in po", "not in the po", "not expected")
_MISSING_MARKERS = ("missing", "not billed", "not on invoice", "not on the invoice")


class MatchAnalyzer:
    def __init__(self, oracle: ComparisonOracle):
        self.oracle = oracle

    async def analyze(self, docs: ResolvedDocuments) -> AnalysisVerdict:
        """
        Ask the oracle for a verdict. Oracle failures propagate: analysis is mandatory.

        Raises:
            OracleError: the oracle failed or replied with a malformed verdict
        """
        po = project(docs.po)
        bol = project(docs.bol) if docs.bol is not None else None
        invoice = project(docs.invoice)

        verdict = await self.oracle.analyze(po, bol, invoice)
        logger.info(
            f"Oracle verdict for invoice {docs.invoice.id}: matched={verdict.matched}, "
            f"confidence={verdict.confidence}, discrepancies={len(verdict.discrepancies)}"
        )
        return verdict


def classify_discrepancy(discrepancy: Discrepancy) -> str:
    """
    Map an oracle discrepancy to a charge comparison status.

    The reported values decide when only one side has one; the issue text is
    consulted only when both or neither side does.
    """
    has_expected = discrepancy.po_value is not None or discrepancy.bol_value is not None
    has_billed = discrepancy.invoice_value is not None
    if has_billed and not has_expected:
        return "extra"
    if has_expected and not has_billed:
        return "missing"

    issue = discrepancy.issue.casefold()
    if any(marker in issue for marker in _EXTRA_MARKERS):
        return "extra"
    if any(marker in issue for marker in _MISSING_MARKERS):
        return "missing"
    return "variance"


def is_high_severity(discrepancy: Discrepancy) -> bool:
    return bool(_SIGNIFICANT.search(discrepancy.issue))


def matching_charges(
    po: ComparableDocument,
    bol: Optional[ComparableDocument],
    invoice: ComparableDocument,
    exclude: Optional[set] = None,
) -> List[ChargeComparison]:
    """
    Charges with the same description and an equal amount on the PO and the
    invoice, and on the BOL when the BOL lists that charge.
    """
    exclude = exclude or set()
    invoice_charges = index_charges(invoice.charges)
    bol_charges = index_charges(bol.charges) if bol and bol.has_charges else {}

    entries = []
    seen = set()
    for description, po_amount in po.charges:
        key = normalize_description(description)
        if key in exclude or key in seen:
            continue
        seen.add(key)

        invoice_charge = invoice_charges.get(key)
        if invoice_charge is None or not amounts_equal(po_amount, invoice_charge[1]):
            continue

        bol_amount = None
        bol_charge = bol_charges.get(key)
        if bol_charge is not None:
            bol_amount = bol_charge[1]
            if not amounts_equal(po_amount, bol_amount):
                continue

        entries.append(ChargeComparison(
            description=description,
            po_amount=money_to_float(po_amount),
            bol_amount=money_to_float(bol_amount),
            invoice_amount=money_to_float(invoice_charge[1]),
            status="match",
        ))
    return entries


def build_comparison(docs: ResolvedDocuments, verdict: AnalysisVerdict) -> MatchComparison:
    """Normalize an oracle verdict into the persisted comparison payload"""
    po = project(docs.po)
    bol = project(docs.bol) if docs.bol is not None else None
    invoice = project(docs.invoice)

    charge_comparison = []
    flagged = set()
    for discrepancy in verdict.discrepancies:
        charge_comparison.append(ChargeComparison(
            description=discrepancy.field,
            po_amount=money_to_float(to_money(discrepancy.po_value)),
            bol_amount=money_to_float(to_money(discrepancy.bol_value)),
            invoice_amount=money_to_float(to_money(discrepancy.invoice_value)),
            status=classify_discrepancy(discrepancy),
            issue=discrepancy.issue,
        ))
        flagged.add(normalize_description(discrepancy.field))

    charge_comparison.extend(matching_charges(po, bol, invoice, exclude=flagged))

    return MatchComparison(
        po_total=money_to_float(po.total) or 0.0,
        bol_total=money_to_float(bol.total) if bol is not None else None,
        invoice_total=money_to_float(invoice.total) or 0.0,
        variance=round(abs(verdict.variance_amount), 2),
        variance_pct=round(abs(verdict.variance_percentage), 2),
        charge_comparison=charge_comparison,
        discrepancies=list(verdict.discrepancies),
    )


def classify_match_status(verdict: AnalysisVerdict) -> MatchStatus:
    if not verdict.matched:
        return MatchStatus.MAJOR_VARIANCE
    if verdict.discrepancies:
        return MatchStatus.MINOR_VARIANCE
    return MatchStatus.PERFECT_MATCH


def build_result_fields(docs: ResolvedDocuments, verdict: AnalysisVerdict) -> dict:
    """Column values for a new MatchingResult row"""
    comparison = build_comparison(docs, verdict)
    return {
        "po_id": docs.po.id,
        "bol_id": docs.bol.id if docs.bol is not None else None,
        "invoice_id": docs.invoice.id,
        "match_status": classify_match_status(verdict).value,
        "confidence_score": verdict.confidence,
        "comparison": comparison.model_dump(mode="json"),
        "reasoning": verdict.reasoning,
        "flags_count": len(verdict.discrepancies),
        "high_severity_flags_count": sum(1 for d in verdict.discrepancies if is_high_severity(d)),
    }
