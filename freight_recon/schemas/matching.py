from pydantic import AliasChoices, BaseModel, Field
from typing import List, Optional, Literal, Dict, Any
from enum import Enum
from datetime import datetime


class MatchStatus(str, Enum):
    """Outcome classification stored on a matching result"""
    PERFECT_MATCH = "perfect_match"
    MINOR_VARIANCE = "minor_variance"
    MAJOR_VARIANCE = "major_variance"
    NO_MATCH = "no_match"


class MatchType(str, Enum):
    """How the invoice was linked to its purchase order"""
    EXACT = "exact"
    FUZZY = "fuzzy"
    MANUAL = "manual"


class MatchingStage(str, Enum):
    """States of a single matching run"""
    FETCH_DOCUMENTS = "fetch_documents"
    ANALYZE = "analyze"
    SAVE_RESULT = "save_result"
    UPDATE_STATUSES = "update_statuses"
    DONE = "done"
    FAILED = "failed"


# Oracle verdict shapes. Anything that does not validate is a malformed reply.

class Discrepancy(BaseModel):
    """One discrepancy reported by the oracle. Values may be amounts, text or structured (e.g. a route)."""
    field: str
    po_value: Any = None
    bol_value: Any = None
    invoice_value: Any = None
    issue: str


class RankingVerdict(BaseModel):
    """Oracle answer when ranking fuzzy-link candidates"""
    best_candidate_index: int = Field(
        ..., ge=-1, validation_alias=AliasChoices("best_candidate_index", "best_match_index")
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""


class AnalysisVerdict(BaseModel):
    """Oracle answer for a resolved PO / BOL / invoice set"""
    matched: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    variance_amount: float
    variance_percentage: float
    reasoning: str = ""
    discrepancies: List[Discrepancy] = []


# Persisted comparison payload

class ChargeComparison(BaseModel):
    description: str
    po_amount: Optional[float] = None
    bol_amount: Optional[float] = None
    invoice_amount: Optional[float] = None
    status: Literal["match", "variance", "missing", "extra"]
    issue: Optional[str] = None


class MatchComparison(BaseModel):
    po_total: float
    bol_total: Optional[float] = None
    invoice_total: float
    variance: float
    variance_pct: float
    charge_comparison: List[ChargeComparison] = []
    discrepancies: List[Discrepancy] = []


class MatchingResultResponse(BaseModel):
    """Response schema for matching result"""
    id: str
    po_id: str
    bol_id: Optional[str] = None
    invoice_id: str
    match_status: str
    confidence_score: float
    comparison: Optional[Dict[str, Any]] = None
    reasoning: Optional[str] = None
    flags_count: int = 0
    high_severity_flags_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class MatchingRunResult(BaseModel):
    """Structured outcome of one matching run. Runs never raise."""
    success: bool
    matched: bool = False
    invoice_id: str
    stage: MatchingStage
    failed_stage: Optional[MatchingStage] = None
    match_type: Optional[MatchType] = None
    result: Optional[MatchingResultResponse] = None
    analysis: Optional[AnalysisVerdict] = None
    status_update_failures: List[str] = []
    error: Optional[str] = None


class FuzzyLinkResponse(BaseModel):
    """Outcome of a manual fuzzy-link request"""
    invoice_id: str
    linked: bool
    po_id: Optional[str] = None
    po_number: Optional[str] = None
    confidence: Optional[float] = None
    bol_id: Optional[str] = None
    bol_number: Optional[str] = None
    reasoning: Optional[str] = None


class MatchingSummary(BaseModel):
    """Dashboard counts over current results and invoice statuses"""
    total_invoices: int
    pending_invoices: int
    matched_invoices: int
    flagged_invoices: int
    approved_invoices: int
    perfect_matches: int
    minor_variances: int
    major_variances: int
    three_way_matches: int
    two_way_matches: int
