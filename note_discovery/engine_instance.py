"""Global search engine instance to avoid circular imports."""

from pathlib import Path

from .config import get_settings
from .core.corpus import JsonFileContentSource
from .core.engine import SearchEngine
from .core.fuzzy_matcher import FuzzyMatcher
from .core.ledger import EntitlementLedger

SAMPLE_CORPUS_PATH = Path(__file__).parent / "sample_corpus.json"

# Global search engine instance
settings = get_settings()
search_engine = SearchEngine(
    source=JsonFileContentSource(settings.corpus_path or SAMPLE_CORPUS_PATH),
    fuzzy_matcher=FuzzyMatcher(
        threshold=settings.fuzzy_threshold,
        field_weights=settings.field_weights(),
        field_penalty=settings.field_penalty,
    ),
    ledger=EntitlementLedger(
        lock_timeout=settings.ledger_lock_timeout_seconds,
        max_attempts=settings.ledger_max_attempts,
        starting_balance=settings.starting_credits,
    ),
    corpus_ttl=settings.corpus_ttl_seconds,
    corpus_timeout=settings.corpus_timeout_seconds,
)
