"""Response models for API endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .content import RankedItem, RedemptionRecord


class SearchResponse(BaseModel):
    """Response for search queries."""

    query: str = Field(..., description="Original search query")
    filters: Dict[str, Any] = Field(default_factory=dict, description="Filters that were applied")
    execution_time_ms: float = Field(..., description="Query execution time in milliseconds")
    total_results: int = Field(..., description="Number of results returned")
    total_matches: int = Field(..., description="Number of matching items before max_results truncation")
    free_results: int = Field(..., description="Number of free-tier results")
    premium_results: int = Field(..., description="Number of premium-tier results")
    corpus_size: int = Field(..., description="Number of items searched")
    results: List[RankedItem] = Field(..., description="Ranked results across both tiers")
    suggestions: Optional[List[str]] = Field(None, description="Alternative suggestions if no match")
    warnings: List[Dict[str, Any]] = Field(default_factory=list, description="Records dropped during normalization")
    corpus_error: Optional[Dict[str, Any]] = Field(None, description="Content source failure, if any")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")


class BalanceResponse(BaseModel):
    """Current credit balance of a user."""

    user_id: str = Field(..., description="User identity")
    balance: int = Field(..., ge=0, description="Available credits")


class RedemptionResponse(BaseModel):
    """Response for a premium redemption request."""

    status: str = Field(..., description="unlocked, already_unlocked or insufficient_credits")
    user_id: str = Field(..., description="User identity")
    item_id: str = Field(..., description="Premium item identity")
    balance: int = Field(..., description="Balance after the attempt")
    shortfall: Optional[int] = Field(None, description="Missing credits when the balance is too low")


class RedemptionListResponse(BaseModel):
    """Items a user has already unlocked."""

    user_id: str
    redemptions: List[RedemptionRecord]
    total: int


class CorpusReloadResponse(BaseModel):
    """Outcome of a corpus reload."""

    total_items: int
    free_items: int
    premium_items: int
    subjects: int
    warnings: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = None
    loaded_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")
    uptime: float = Field(..., description="Service uptime in seconds")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")
    dependencies: Dict[str, str] = Field(..., description="Dependency status")


class MetricsResponse(BaseModel):
    """Performance metrics response."""

    total_queries: int = Field(..., description="Total queries processed")
    average_response_time_ms: float = Field(..., description="Average response time")
    no_match_rate: float = Field(..., description="Share of queries without results")
    corpus_size: int = Field(..., description="Items in the current corpus")
    corpus_reloads: int = Field(..., description="Number of corpus rebuilds")
    corpus_errors: int = Field(..., description="Failed corpus rebuilds")
    ledger_accounts: int = Field(..., description="Known credit accounts")
    ledger_redemptions: int = Field(..., description="Redemption records written")
    memory_usage_mb: float = Field(..., description="Memory usage in MB")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Metrics timestamp")
