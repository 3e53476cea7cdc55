"""Core search and entitlement functionality."""

from .engine import SearchEngine
from .fuzzy_matcher import FuzzyMatcher
from .normalizer import ItemNormalizer, TextNormalizer
from .filters import FacetFilter
from .compositor import ResultCompositor
from .ledger import EntitlementLedger
from .corpus import CorpusSnapshot, InMemoryContentSource, JsonFileContentSource

__all__ = [
    "SearchEngine",
    "FuzzyMatcher",
    "ItemNormalizer",
    "TextNormalizer",
    "FacetFilter",
    "ResultCompositor",
    "EntitlementLedger",
    "CorpusSnapshot",
    "InMemoryContentSource",
    "JsonFileContentSource",
]
