"""Content sources and the immutable corpus snapshot built from them."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from ..models.content import ContentItem, Tier
from .errors import CorpusUnavailable, NoteDiscoveryError, NormalizationError

Record = Mapping[str, Any]


class ContentSource(Protocol):
    """Read-only access to the portal's content tables."""

    def fetch_free(self) -> Sequence[Record]:
        ...

    def fetch_premium(self) -> Sequence[Record]:
        ...

    def fetch_subjects(self) -> Sequence[Record]:
        ...


class InMemoryContentSource:
    """Content source backed by plain lists, used for tests and embedding."""

    def __init__(
        self,
        free: Optional[Sequence[Record]] = None,
        premium: Optional[Sequence[Record]] = None,
        subjects: Optional[Sequence[Record]] = None,
    ) -> None:
        self.free = list(free or [])
        self.premium = list(premium or [])
        self.subjects = list(subjects or [])

    def fetch_free(self) -> Sequence[Record]:
        return list(self.free)

    def fetch_premium(self) -> Sequence[Record]:
        return list(self.premium)

    def fetch_subjects(self) -> Sequence[Record]:
        return list(self.subjects)


class JsonFileContentSource:
    """
    Content source reading a JSON export of the portal tables.

    The file holds an object with ``notes``, ``premium`` and ``subjects``
    arrays. It is re-read on every fetch so edits show up on the next reload.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CorpusUnavailable(f"cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise CorpusUnavailable(f"{self.path} must contain a JSON object")
        return data

    def fetch_free(self) -> Sequence[Record]:
        return self._read().get("notes", [])

    def fetch_premium(self) -> Sequence[Record]:
        return self._read().get("premium", [])

    def fetch_subjects(self) -> Sequence[Record]:
        return self._read().get("subjects", [])


class CorpusSnapshot:
    """
    A normalized corpus at one point in time.

    Snapshots are never mutated after construction, so any number of searches
    can read one concurrently while a newer snapshot is being built.
    """

    def __init__(
        self,
        items: Sequence[ContentItem],
        subjects: Optional[Mapping[str, str]] = None,
        warnings: Optional[Sequence[NormalizationError]] = None,
        error: Optional[NoteDiscoveryError] = None,
    ) -> None:
        self.items: Tuple[ContentItem, ...] = tuple(items)
        self.warnings: Tuple[NormalizationError, ...] = tuple(warnings or ())
        self.error = error
        self.loaded_at = datetime.now(timezone.utc)

        self.subjects: Dict[str, str] = dict(subjects or {})
        for item in self.items:
            if item.subject is not None:
                self.subjects.setdefault(item.subject.id, item.subject.name)

        self.positions: Dict[str, int] = {item.id: i for i, item in enumerate(self.items)}
        self.free_items: Tuple[ContentItem, ...] = tuple(i for i in self.items if i.tier == Tier.FREE)
        self.premium_items: Tuple[ContentItem, ...] = tuple(i for i in self.items if i.tier == Tier.PREMIUM)

    @classmethod
    def empty(cls, error: Optional[NoteDiscoveryError] = None) -> "CorpusSnapshot":
        return cls([], error=error)

    def __len__(self) -> int:
        return len(self.items)

    def get(self, item_id: str) -> Optional[ContentItem]:
        position = self.positions.get(item_id)
        return self.items[position] if position is not None else None

    def prices(self) -> Dict[str, int]:
        """Credit price catalog of the premium items."""
        return {item.id: item.credit_price for item in self.premium_items}

    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.loaded_at).total_seconds()

    def warning_dicts(self) -> List[Dict[str, Any]]:
        return [w.to_dict() for w in self.warnings]

    def get_stats(self) -> Dict[str, Any]:
        """Get corpus statistics."""
        return {
            "total_items": len(self.items),
            "free_items": len(self.free_items),
            "premium_items": len(self.premium_items),
            "subjects": len(self.subjects),
            "total_downloads": sum(item.download_count for item in self.items),
            "warnings": len(self.warnings),
            "loaded_at": self.loaded_at.isoformat(),
        }


def subject_names(records: Sequence[Record]) -> Dict[str, str]:
    """Map subject rows onto id -> name, skipping rows without an id."""
    subjects = {}
    for row in records or []:
        if isinstance(row, Mapping) and row.get("id"):
            subjects[str(row["id"])] = str(row.get("name") or "")
    return subjects
