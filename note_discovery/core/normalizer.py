"""Text normalization and source record normalization."""

import re
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import structlog
from pydantic import ValidationError

from ..models.content import ContentItem, FileKind, SubjectRef, Tier
from .errors import NormalizationError

logger = structlog.get_logger(__name__)


class TextNormalizer:
    """Handles text normalization for consistent matching."""

    def __init__(self) -> None:
        """Initialize the normalizer."""
        # Common delimiter patterns
        self.delimiter_patterns = [
            r'[-_/]',  # hyphens, underscores and slashes
            r'\s+',    # whitespace
        ]

        # Compile regex patterns for performance
        self.delimiter_regex = re.compile('|'.join(self.delimiter_patterns))
        self.space_regex = re.compile(r' +')

    def normalize(self, text: str) -> str:
        """
        Normalize text for consistent processing.

        Args:
            text: Input text to normalize

        Returns:
            Lowercased, accent-folded text with single spaces between words
        """
        if not text:
            return ""

        normalized = unicodedata.normalize('NFKD', text.lower())

        # Drop combining marks so "Économie" matches "economie"
        normalized = ''.join(c for c in normalized if not unicodedata.combining(c))

        normalized = self.delimiter_regex.sub(' ', normalized)
        normalized = self.space_regex.sub(' ', normalized)

        return normalized.strip()

    def tokenize(self, text: str) -> List[str]:
        """
        Tokenize text into words.

        Args:
            text: Input text

        Returns:
            List of tokens
        """
        if not text:
            return []

        return [token for token in self.normalize(text).split(' ') if token]


# Extension or MIME type -> FileKind, following the upload form's accept list
FILE_KIND_ALIASES: Dict[str, FileKind] = {
    "pdf": FileKind.PDF,
    "application/pdf": FileKind.PDF,
    "doc": FileKind.DOCX,
    "docx": FileKind.DOCX,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileKind.DOCX,
    "ppt": FileKind.PPTX,
    "pptx": FileKind.PPTX,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": FileKind.PPTX,
    "png": FileKind.IMAGE,
    "jpg": FileKind.IMAGE,
    "jpeg": FileKind.IMAGE,
    "gif": FileKind.IMAGE,
    "image": FileKind.IMAGE,
}


def file_kind_for(file_type: Optional[str]) -> FileKind:
    """Map a stored file type (extension or MIME type) onto a FileKind."""
    if not file_type:
        return FileKind.OTHER
    key = file_type.strip().lower().lstrip('.')
    if key in FILE_KIND_ALIASES:
        return FILE_KIND_ALIASES[key]
    if key.startswith("image/"):
        return FileKind.IMAGE
    return FileKind.OTHER


class NormalizationReport:
    """Items that survived normalization plus one warning per dropped record."""

    def __init__(self, items: List[ContentItem], warnings: List[NormalizationError]) -> None:
        self.items = items
        self.warnings = warnings

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __repr__(self) -> str:
        return f"NormalizationReport(items={len(self.items)}, warnings={len(self.warnings)})"


class ItemNormalizer:
    """Turns loosely-shaped note and summary records into ContentItems."""

    def normalize(
        self,
        free_records: Iterable[Mapping[str, Any]],
        premium_records: Iterable[Mapping[str, Any]],
    ) -> NormalizationReport:
        """
        Normalize both record batches into one ordered corpus.

        Free items come first, then premium items, each in source order.
        Malformed records are dropped and reported, never raised.

        Args:
            free_records: Free note descriptors
            premium_records: Premium summary descriptors

        Returns:
            NormalizationReport with the corpus and the dropped-record warnings
        """
        items: List[ContentItem] = []
        warnings: List[NormalizationError] = []
        seen: Set[str] = set()

        batches = ((Tier.FREE, free_records), (Tier.PREMIUM, premium_records))
        for tier, records in batches:
            for record in records or []:
                try:
                    item = self.normalize_record(record, tier)
                    if item.id in seen:
                        raise NormalizationError(item.id, "duplicate id")
                except NormalizationError as e:
                    warnings.append(e)
                    continue
                seen.add(item.id)
                items.append(item)

        if warnings:
            logger.warning(
                "Dropped malformed records",
                dropped=len(warnings),
                kept=len(items),
            )
        return NormalizationReport(items, warnings)

    def normalize_record(self, record: Mapping[str, Any], tier: Tier) -> ContentItem:
        """
        Normalize a single record.

        Raises:
            NormalizationError: if id, title or the premium price is missing or invalid
        """
        if not isinstance(record, Mapping):
            raise NormalizationError(None, "record is not a mapping")

        raw_id = record.get("id")
        record_id = str(raw_id).strip() if raw_id is not None else ""
        if not record_id:
            raise NormalizationError(None, "missing id")

        title = record.get("title")
        if not isinstance(title, str) or not title.strip():
            raise NormalizationError(record_id, "missing title")

        profile = record.get("profiles") or {}

        fields: Dict[str, Any] = {
            "id": record_id,
            "title": title.strip(),
            "description": record.get("description") or "",
            "tags": self._tags(record.get("tags")),
            "subject": self._subject(record),
            "author": self._author(record, profile),
            "university": record.get("university") or profile.get("university") or None,
            "file_kind": file_kind_for(record.get("file_type") or record.get("file_kind")),
            "download_count": record.get("download_count") or 0,
            "average_rating": record.get("average_rating"),
            "tier": tier,
        }

        if tier == Tier.PREMIUM:
            fields["credit_price"] = self._price(record_id, record)
            fields["page_count"] = record.get("page_count") or record.get("pages")

        try:
            return ContentItem(**fields)
        except ValidationError as e:
            error = e.errors()[0]
            location = ".".join(str(part) for part in error["loc"]) or "record"
            raise NormalizationError(record_id, f"{location}: {error['msg']}") from e

    def _price(self, record_id: str, record: Mapping[str, Any]) -> int:
        price = record.get("credit_price", record.get("price"))
        if price is None:
            raise NormalizationError(record_id, "premium item without credit price")
        if isinstance(price, bool):
            raise NormalizationError(record_id, f"invalid credit price {price!r}")
        try:
            value = int(price)
        except (TypeError, ValueError) as e:
            raise NormalizationError(record_id, f"invalid credit price {price!r}") from e
        if value != price and str(value) != str(price).strip():
            raise NormalizationError(record_id, f"credit price must be an integer, got {price!r}")
        if value <= 0:
            raise NormalizationError(record_id, f"credit price must be positive, got {value}")
        return value

    @staticmethod
    def _tags(raw: Any) -> List[str]:
        if not raw:
            return []
        if isinstance(raw, str):
            raw = raw.split(',')
        elif not isinstance(raw, (list, tuple)):
            raw = [raw]
        return [str(tag).strip() for tag in raw if tag is not None and str(tag).strip()]

    @staticmethod
    def _subject(record: Mapping[str, Any]) -> Optional[SubjectRef]:
        nested = record.get("subject") or {}
        subject_id = record.get("subject_id") or nested.get("id")
        if not subject_id:
            return None
        name = (record.get("subjects") or {}).get("name") or nested.get("name") or ""
        return SubjectRef(id=str(subject_id), name=name)

    @staticmethod
    def _author(record: Mapping[str, Any], profile: Mapping[str, Any]) -> str:
        if record.get("author"):
            return str(record["author"]).strip()
        parts = [profile.get("first_name"), profile.get("last_name")]
        return " ".join(str(p).strip() for p in parts if p)
