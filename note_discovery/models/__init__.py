"""Data models for the note discovery engine."""

from .content import (
    ContentItem,
    CreditAccount,
    FileKind,
    MatchResult,
    RankedItem,
    RedemptionOutcome,
    RedemptionRecord,
    RedemptionStatus,
    SearchFilters,
    SubjectRef,
    Tier,
)
from .response import (
    SearchResponse,
    BalanceResponse,
    RedemptionResponse,
    ErrorResponse,
)
from .request import SearchRequest, RedeemRequest

__all__ = [
    "ContentItem",
    "CreditAccount",
    "FileKind",
    "MatchResult",
    "RankedItem",
    "RedemptionOutcome",
    "RedemptionRecord",
    "RedemptionStatus",
    "SearchFilters",
    "SubjectRef",
    "Tier",
    "SearchResponse",
    "BalanceResponse",
    "RedemptionResponse",
    "ErrorResponse",
    "SearchRequest",
    "RedeemRequest",
]
