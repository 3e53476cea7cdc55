"""
Note Discovery - search and entitlement engine for a student note-sharing portal.

This package ranks free notes and premium summaries against free-text queries
with typo-tolerant fuzzy matching, narrows them with facet filters, and gates
premium items behind a per-user credit ledger that debits each unlock once.
"""

__version__ = "1.0.0"

from .core.engine import SearchEngine
from .core.ledger import EntitlementLedger
from .models.content import ContentItem, SearchFilters
from .models.response import SearchResponse

__all__ = [
    "SearchEngine",
    "EntitlementLedger",
    "ContentItem",
    "SearchFilters",
    "SearchResponse",
]
