"""Domain models shared by the search pipeline and the ledger."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.errors import ConfigurationError


class Tier(str, Enum):
    """Access tier of a content item."""

    FREE = "free"
    PREMIUM = "premium"


class FileKind(str, Enum):
    """Kinds of uploaded files the portal accepts."""

    PDF = "pdf"
    DOCX = "docx"
    PPTX = "pptx"
    IMAGE = "image"
    OTHER = "other"


class SubjectRef(BaseModel):
    """Subject identity plus its display name."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""


class ContentItem(BaseModel):
    """Normalized, tier-tagged view of a note or premium summary."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    subject: Optional[SubjectRef] = None
    author: str = ""
    university: Optional[str] = None
    file_kind: FileKind = FileKind.OTHER
    download_count: int = Field(default=0, ge=0)
    average_rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    tier: Tier = Tier.FREE
    credit_price: Optional[int] = Field(default=None, gt=0)
    page_count: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_tier_fields(self) -> "ContentItem":
        """Credit price is defined if and only if the item is premium."""
        if self.tier == Tier.PREMIUM and self.credit_price is None:
            raise ValueError("premium items require a credit price")
        if self.tier == Tier.FREE and self.credit_price is not None:
            raise ValueError("free items cannot carry a credit price")
        if self.tier == Tier.FREE and self.page_count is not None:
            raise ValueError("page count is only tracked for premium items")
        return self

    @property
    def is_premium(self) -> bool:
        return self.tier == Tier.PREMIUM


class SearchFilters(BaseModel):
    """Facet selection. Every set field narrows the result (logical AND)."""

    subject_id: Optional[str] = None
    university: Optional[str] = None
    file_kind: Optional[FileKind] = None
    min_rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)

    @field_validator("subject_id", "university")
    @classmethod
    def blank_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty selections as "all"."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @classmethod
    def from_params(cls, **params: Any) -> "SearchFilters":
        """
        Build filters from raw (untrusted) values.

        Raises:
            ConfigurationError: if any value is out of range or unknown
        """
        try:
            return cls(**{k: v for k, v in params.items() if v not in (None, "")})
        except ValidationError as e:
            raise ConfigurationError(f"invalid filter: {e.errors()[0]['msg']}") from e

    def active(self) -> Dict[str, Any]:
        """Return only the filters that are set."""
        return self.model_dump(mode="json", exclude_none=True)

    def is_empty(self) -> bool:
        return not self.active()


class MatchResult(BaseModel):
    """A content item paired with its relevance score (0 is a perfect match)."""

    model_config = ConfigDict(frozen=True)

    item: ContentItem
    score: float = Field(..., ge=0.0, le=1.0)
    matched_field: Optional[str] = None


class RankedItem(BaseModel):
    """Display-ready result: the item plus the gating data a caller renders."""

    item: ContentItem
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    tier: Tier
    credit_price: Optional[int] = None
    matched_field: Optional[str] = None


class CreditAccount(BaseModel):
    """A user's credit balance."""

    user_id: str
    balance: int = Field(default=0, ge=0)


class RedemptionRecord(BaseModel):
    """Proof that an item's price has been debited for a user."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    item_id: str
    price: int = Field(..., gt=0)
    redeemed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RedemptionStatus(str, Enum):
    """Outcome of a redemption attempt."""

    UNLOCKED = "unlocked"
    ALREADY_UNLOCKED = "already_unlocked"
    INSUFFICIENT_CREDITS = "insufficient_credits"


class RedemptionOutcome(BaseModel):
    """Result of EntitlementLedger.attempt_redeem."""

    status: RedemptionStatus
    user_id: str
    item_id: str
    balance: int
    shortfall: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status != RedemptionStatus.INSUFFICIENT_CREDITS
