"""Request models for API endpoints."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .content import FileKind, SearchFilters


class SearchRequest(BaseModel):
    """Request model for search queries."""

    query: str = Field(default="", max_length=200, description="Free-text query; empty lists everything")
    subject_id: Optional[str] = Field(None, description="Restrict to one subject")
    university: Optional[str] = Field(None, description="Case-insensitive university substring")
    file_kind: Optional[FileKind] = Field(None, description="pdf, docx, pptx, image or other")
    min_rating: Optional[float] = Field(None, ge=0.0, le=5.0, description="Minimum average rating")
    fuzzy_threshold: Optional[float] = Field(
        None, gt=0.0, le=1.0, description="Custom fuzzy matching threshold"
    )
    max_results: Optional[int] = Field(
        None, ge=1, le=500, description="Maximum number of results to return"
    )
    include_suggestions: bool = Field(
        default=True, description="Whether to include suggestions for no-match queries"
    )

    @field_validator('query')
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Normalize query input."""
        return v.strip()

    def to_filters(self) -> SearchFilters:
        return SearchFilters(
            subject_id=self.subject_id,
            university=self.university,
            file_kind=self.file_kind,
            min_rating=self.min_rating,
        )


class RedeemRequest(BaseModel):
    """Request model for unlocking a premium item."""

    item_id: str = Field(..., min_length=1, description="Premium item to unlock")

    @field_validator('item_id')
    @classmethod
    def validate_item_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Item id cannot be empty")
        return v.strip()
