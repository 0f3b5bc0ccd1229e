from freight_recon.schemas.document import Charge, StatusUpdate, FileResponse
from freight_recon.schemas.po import POCreate, POResponse
from freight_recon.schemas.bol import BOLCreate, BOLResponse
from freight_recon.schemas.invoice import InvoiceCreate, InvoiceResponse, DecisionCreate, DecisionRequest
from freight_recon.schemas.matching import (
    AnalysisVerdict,
    MatchingResultResponse,
    MatchingRunResult,
    MatchStatus,
    MatchType,
    RankingVerdict,
)

__all__ = [
    "Charge",
    "StatusUpdate",
    "FileResponse",
    "POCreate",
    "POResponse",
    "BOLCreate",
    "BOLResponse",
    "InvoiceCreate",
    "InvoiceResponse",
    "DecisionCreate",
    "DecisionRequest",
    "AnalysisVerdict",
    "MatchingResultResponse",
    "MatchingRunResult",
    "MatchStatus",
    "MatchType",
    "RankingVerdict",
]
