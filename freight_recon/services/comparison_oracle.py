"""
Comparison Oracle - structured judgment service used by the fuzzy linker and
the match analyzer.

The oracle is a black box that may be slow, non-deterministic or wrong. Its
replies are validated against RankingVerdict / AnalysisVerdict; anything
that does not fit raises OracleResponseError.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from freight_recon.config import settings
from freight_recon.errors import OracleError, OracleResponseError
from freight_recon.schemas.matching import RankingVerdict, AnalysisVerdict
from freight_recon.services.document_projection import ComparableDocument

logger = logging.getLogger(__name__)

NO_CANDIDATE = -1

KIND_LABELS = {
    "purchase_order": "Purchase Order",
    "bill_of_lading": "Bill of Lading",
    "invoice": "Invoice",
}

RANKING_DIMENSIONS = {
    "purchase_order": [
        "Carrier name similarity (very important)",
        "Total amount proximity (important)",
        "Charge descriptions and amounts (important)",
        "Dates (pickup/delivery vs invoice date)",
        "PO number similarity (typos, formatting differences like \"PO-1234\" vs \"1234\")",
        "Origin/destination if mentioned",
    ],
    "bill_of_lading": [
        "Carrier name consistency (very important)",
        "Origin and destination match (very important)",
        "Dates consistency (pickup/delivery dates)",
        "BOL number similarity to the invoice's referenced BOL",
        "PO number similarity to the BOL's referenced PO",
    ],
}


def parse_json_reply(content: str) -> dict:
    """Parse a JSON object from an LLM reply that may be wrapped in markdown fences"""
    content = (content or "").strip()
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise OracleResponseError(f"Oracle reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise OracleResponseError("Oracle reply is not a JSON object")
    return data


def validate_ranking(data: dict, candidate_count: int) -> RankingVerdict:
    try:
        verdict = RankingVerdict.model_validate(data)
    except ValidationError as e:
        raise OracleResponseError(f"Malformed ranking verdict: {e}") from e
    if verdict.best_candidate_index >= candidate_count:
        raise OracleResponseError(
            f"Ranking verdict points at candidate {verdict.best_candidate_index} of {candidate_count}"
        )
    return verdict


def validate_analysis(data: dict) -> AnalysisVerdict:
    try:
        return AnalysisVerdict.model_validate(data)
    except ValidationError as e:
        raise OracleResponseError(f"Malformed analysis verdict: {e}") from e


class ComparisonOracle(ABC):
    """Contract consumed by the fuzzy linker and the match analyzer"""

    @abstractmethod
    async def rank(
        self,
        anchor: ComparableDocument,
        candidates: Sequence[ComparableDocument],
        context: Sequence[ComparableDocument] = (),
    ) -> RankingVerdict:
        """Pick the candidate that best matches the anchor, or NO_CANDIDATE"""

    @abstractmethod
    async def analyze(
        self,
        po: ComparableDocument,
        bol: Optional[ComparableDocument],
        invoice: ComparableDocument,
    ) -> AnalysisVerdict:
        """Judge whether the resolved documents agree"""


class LLMComparisonOracle(ComparisonOracle):
    """Comparison oracle backed by a chat model"""

    def __init__(self, llm_client: Optional[ChatOpenAI] = None):
        self._llm = llm_client

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=settings.agent_model,
                temperature=settings.agent_temperature,
                api_key=settings.openai_api_key
            )
        return self._llm

    async def _ask(self, prompt: str) -> dict:
        try:
            response = await self.llm.ainvoke(prompt)
        except Exception as e:
            raise OracleError(f"Oracle request failed: {e}") from e
        return parse_json_reply(response.content)

    async def rank(self, anchor, candidates, context=()):
        prompt = build_ranking_prompt(anchor, candidates, context)
        data = await self._ask(prompt)
        return validate_ranking(data, len(candidates))

    async def analyze(self, po, bol, invoice):
        prompt = build_analysis_prompt(po, bol, invoice)
        data = await self._ask(prompt)
        return validate_analysis(data)


def _render(document: ComparableDocument) -> str:
    return json.dumps(document.to_prompt_dict(), indent=2, default=str)


def build_ranking_prompt(
    anchor: ComparableDocument,
    candidates: Sequence[ComparableDocument],
    context: Sequence[ComparableDocument] = (),
) -> str:
    candidate_kind = candidates[0].kind if candidates else "purchase_order"
    label = KIND_LABELS[candidate_kind]
    dimensions = RANKING_DIMENSIONS.get(candidate_kind, RANKING_DIMENSIONS["purchase_order"])

    context_block = "\n".join(
        f"**{KIND_LABELS[doc.kind]}:**\n{_render(doc)}\n" for doc in context
    )
    candidate_block = "\n".join(
        f"[{index}] {_render(candidate)}" for index, candidate in enumerate(candidates)
    )
    dimension_block = "\n".join(f"{n}. {d}" for n, d in enumerate(dimensions, start=1))

    return f"""You are analyzing freight documents to find the best matching {label}.

**{KIND_LABELS[anchor.kind]} (anchor):**
{_render(anchor)}

{context_block}
**Candidate {label}s:**
{candidate_block}

**Your Task:**
Determine which {label} (if any) best matches. Consider:
{dimension_block}

**Important Rules:**
- If no candidate is a reasonable match, return -1
- Be conservative - only return high confidence if the match is clear
- Identifiers might have typos or format differences

Output format (JSON):
{{
    "best_candidate_index": index of the best candidate or -1,
    "confidence": number from 0 to 1,
    "reasoning": "2-3 sentences explaining the decision"
}}

Return ONLY valid JSON, no markdown formatting."""


def build_analysis_prompt(
    po: ComparableDocument,
    bol: Optional[ComparableDocument],
    invoice: ComparableDocument,
) -> str:
    bol_block = f"**Bill of Lading (BOL):**\n{_render(bol)}" if bol else "**Bill of Lading:** Not available"

    return f"""You are analyzing a 3-way match between a Purchase Order (PO), a Bill of Lading (BOL) and an Invoice for freight/logistics services.

**Purchase Order:**
{_render(po)}

**Invoice:**
{_render(invoice)}

{bol_block}

**Your Task:**
Analyze whether the Invoice matches the Purchase Order (and the BOL when available). Compare:
1. Totals: PO expected vs BOL actual charges (if present) vs invoice billed
2. Carrier identity
3. Route (origin/destination)
4. Dates (pickup/delivery vs invoice date)
5. Itemized charges by description:
   - a charge on the invoice but not on the PO/BOL is an "unexpected charge"
   - a charge on the PO/BOL but not on the invoice is a "missing charge"
   - the same charge with a different amount is a "charge variance"

For freight logistics, small variances (fuel surcharges, accessorial fees) are common and
should not by themselves make the documents mismatch. Only significant discrepancies
should produce matched=false. Say "significant" in the issue text of discrepancies that
are significant.

Output format (JSON):
{{
    "matched": true or false,
    "confidence": number from 0 to 1,
    "variance_amount": absolute dollar difference between PO and invoice totals,
    "variance_percentage": percentage difference,
    "reasoning": "2-3 sentence explanation",
    "discrepancies": [
        {{"field": "...", "po_value": ..., "bol_value": ..., "invoice_value": ..., "issue": "..."}}
    ]
}}

Return ONLY valid JSON, no markdown formatting."""


_default_oracle: Optional[ComparisonOracle] = None


def get_oracle() -> ComparisonOracle:
    """FastAPI dependency returning the shared LLM oracle"""
    global _default_oracle
    if _default_oracle is None:
        _default_oracle = LLMComparisonOracle()
    return _default_oracle
