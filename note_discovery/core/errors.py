"""Exception hierarchy for the search and entitlement engine."""

from typing import Any, Dict, Optional


class NoteDiscoveryError(Exception):
    """Base class for all engine errors."""

    retryable = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for response metadata."""
        return {"error": type(self).__name__, "message": str(self)}


class NormalizationError(NoteDiscoveryError):
    """A source record could not be turned into a ContentItem."""

    def __init__(self, record_id: Optional[str], reason: str) -> None:
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"record {record_id or '<unknown>'}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {"record_id": self.record_id, "reason": self.reason}


class InsufficientCredits(NoteDiscoveryError):
    """The account balance does not cover the item's credit price."""

    def __init__(self, shortfall: int, balance: int) -> None:
        self.shortfall = shortfall
        self.balance = balance
        super().__init__(f"insufficient credits: short by {shortfall}")


class LedgerContention(NoteDiscoveryError):
    """Timed out waiting for the per-account lock."""

    retryable = True

    def __init__(self, user_id: str, timeout: float) -> None:
        self.user_id = user_id
        self.timeout = timeout
        super().__init__(
            f"could not lock account {user_id} within {timeout:.2f}s"
        )


class ConfigurationError(NoteDiscoveryError):
    """Invalid filter value or redemption parameter."""


class CorpusUnavailable(NoteDiscoveryError):
    """The content source failed or did not answer in time."""

    retryable = True


class ItemNotFound(NoteDiscoveryError):
    """The requested item is not in the current corpus."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"item {item_id} not found")
