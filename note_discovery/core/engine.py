"""Search session orchestration over the corpus, matcher, filters and ledger."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..models.content import ContentItem, MatchResult, RedemptionOutcome, SearchFilters, Tier
from ..models.response import SearchResponse
from .compositor import ResultCompositor
from .corpus import ContentSource, CorpusSnapshot, InMemoryContentSource, subject_names
from .errors import CorpusUnavailable, ItemNotFound, NoteDiscoveryError
from .filters import FacetFilter
from .fuzzy_matcher import DEFAULT_THRESHOLD, FuzzyMatcher
from .ledger import EntitlementLedger
from .normalizer import ItemNormalizer

logger = structlog.get_logger(__name__)


def _empty_stats() -> Dict[str, Any]:
    return {
        "total_queries": 0,
        "matched_queries": 0,
        "empty_queries": 0,
        "no_matches": 0,
        "total_execution_time": 0.0,
        "corpus_reloads": 0,
        "corpus_errors": 0,
    }


class SearchEngine:
    """Main search engine for free notes and premium summaries."""

    def __init__(
        self,
        source: Optional[ContentSource] = None,
        fuzzy_matcher: Optional[FuzzyMatcher] = None,
        ledger: Optional[EntitlementLedger] = None,
        fuzzy_threshold: float = DEFAULT_THRESHOLD,
        corpus_ttl: Optional[float] = None,
        corpus_timeout: float = 10.0,
    ) -> None:
        """
        Initialize the search engine.

        Args:
            source: Where notes, summaries and subjects come from
            fuzzy_matcher: Matcher to use (built from fuzzy_threshold if None)
            ledger: Entitlement ledger for premium redemptions
            fuzzy_threshold: Default threshold for fuzzy matching
            corpus_ttl: Seconds before a snapshot is rebuilt on the next search (None: never)
            corpus_timeout: Seconds a corpus fetch may take before it fails
        """
        self.source = source if source is not None else InMemoryContentSource()
        self.fuzzy_matcher = fuzzy_matcher or FuzzyMatcher(threshold=fuzzy_threshold)
        self.ledger = ledger if ledger is not None else EntitlementLedger()
        self.item_normalizer = ItemNormalizer()
        self.facet_filter = FacetFilter()
        self.compositor = ResultCompositor()
        self.corpus_ttl = corpus_ttl
        self.corpus_timeout = corpus_timeout

        self._snapshot: Optional[CorpusSnapshot] = None
        self._reload_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stats = _empty_stats()

    @property
    def fuzzy_threshold(self) -> float:
        return self.fuzzy_matcher.threshold

    def load_corpus(self) -> CorpusSnapshot:
        """
        Rebuild the corpus from the content source.

        A failing or slow source yields an empty snapshot carrying the error;
        this method does not raise for source failures.

        Returns:
            The new snapshot, already installed
        """
        if not self._reload_lock.acquire(timeout=self.corpus_timeout):
            error = CorpusUnavailable("another corpus rebuild is still running")
            logger.warning("Corpus reload skipped", error=str(error))
            return self._snapshot or CorpusSnapshot.empty(error)

        try:
            return self._rebuild()
        finally:
            self._reload_lock.release()

    def _rebuild(self) -> CorpusSnapshot:
        """Fetch, normalize and install a snapshot; caller holds the reload lock."""
        start_time = time.time()
        try:
            free, premium, subjects = self._fetch()
        except NoteDiscoveryError as e:
            snapshot = CorpusSnapshot.empty(e)
            self._bump("corpus_errors")
            logger.error("Corpus reload failed", error=str(e))
        else:
            report = self.item_normalizer.normalize(free, premium)
            snapshot = CorpusSnapshot(report.items, subject_names(subjects), report.warnings)
            self.ledger.set_prices(snapshot.prices())
            logger.info(
                "Corpus loaded",
                total_items=len(snapshot),
                free_items=len(snapshot.free_items),
                premium_items=len(snapshot.premium_items),
                warnings=report.warning_count,
                load_time_ms=round((time.time() - start_time) * 1000, 2),
            )

        self._snapshot = snapshot
        self._bump("corpus_reloads")
        return snapshot

    def _needs_reload(self, snapshot: Optional[CorpusSnapshot]) -> bool:
        if snapshot is None:
            return True
        return self.corpus_ttl is not None and snapshot.age_seconds() >= self.corpus_ttl

    def snapshot(self, refresh: bool = False) -> CorpusSnapshot:
        """
        Current snapshot, rebuilt when missing, stale or when asked to.

        Concurrent callers that find the same stale snapshot share one rebuild.
        """
        if refresh:
            return self.load_corpus()

        snapshot = self._snapshot
        if not self._needs_reload(snapshot):
            return snapshot

        if not self._reload_lock.acquire(timeout=self.corpus_timeout):
            logger.warning("Corpus reload still running, serving current snapshot")
            return snapshot or CorpusSnapshot.empty(
                CorpusUnavailable("another corpus rebuild is still running")
            )
        try:
            # Another caller may have rebuilt while this one waited
            if not self._needs_reload(self._snapshot):
                return self._snapshot
            return self._rebuild()
        finally:
            self._reload_lock.release()

    def search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        fuzzy_threshold: Optional[float] = None,
        max_results: Optional[int] = None,
        include_suggestions: bool = True,
    ) -> SearchResponse:
        """
        Search free notes and premium summaries.

        Args:
            query: Free-text query; blank lists the whole (filtered) corpus
            filters: Facet selection
            fuzzy_threshold: Custom fuzzy matching threshold
            max_results: Maximum number of results to return
            include_suggestions: Whether to include suggestions for no-match queries

        Returns:
            SearchResponse with ranked results and metadata

        Raises:
            ConfigurationError: if a filter names an unknown subject
        """
        start_time = time.time()
        query = (query or "").strip()
        filters = filters or SearchFilters()
        snapshot = self.snapshot()

        if snapshot.error is None:
            self.facet_filter.validate(filters, snapshot.subjects.keys())

        free = self._rank(query, snapshot.free_items, filters, fuzzy_threshold)
        premium = self._rank(query, snapshot.premium_items, filters, fuzzy_threshold)
        total_matches = len(free) + len(premium)
        results = self.compositor.compose(free, premium, snapshot.positions, max_results)

        suggestions = None
        if query and not results and include_suggestions:
            suggestions = self.fuzzy_matcher.suggest(query, snapshot.items)

        execution_time = (time.time() - start_time) * 1000
        with self._stats_lock:
            self._stats["total_queries"] += 1
            self._stats["total_execution_time"] += execution_time
            if not query:
                self._stats["empty_queries"] += 1
            elif results:
                self._stats["matched_queries"] += 1
            else:
                self._stats["no_matches"] += 1

        return SearchResponse(
            query=query,
            filters=filters.active(),
            execution_time_ms=execution_time,
            total_results=len(results),
            total_matches=total_matches,
            free_results=sum(1 for r in results if r.tier == Tier.FREE),
            premium_results=sum(1 for r in results if r.tier == Tier.PREMIUM),
            corpus_size=len(snapshot),
            results=results,
            suggestions=suggestions,
            warnings=snapshot.warning_dicts(),
            corpus_error=snapshot.error.to_dict() if snapshot.error else None,
        )

    def _rank(
        self,
        query: str,
        items: Sequence[ContentItem],
        filters: SearchFilters,
        threshold: Optional[float],
    ) -> List[MatchResult]:
        candidates = self.fuzzy_matcher.match(query, items, threshold)
        return self.facet_filter.apply(candidates, filters)

    def redeem(self, user_id: str, item_id: str) -> RedemptionOutcome:
        """
        Unlock a premium item at its configured price.

        Raises:
            ItemNotFound: if the item is not a premium item of the current corpus
        """
        item = self.snapshot().get(item_id)
        if item is None or not item.is_premium:
            raise ItemNotFound(item_id)
        return self.ledger.attempt_redeem(user_id, item.id, item.credit_price)

    def get_balance(self, user_id: str) -> int:
        return self.ledger.get_balance(user_id)

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        return self.snapshot().get(item_id)

    def _fetch(self):
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="corpus-fetch")
        future = executor.submit(
            lambda: (
                self.source.fetch_free(),
                self.source.fetch_premium(),
                self.source.fetch_subjects(),
            )
        )
        try:
            return future.result(timeout=self.corpus_timeout)
        except FutureTimeout as e:
            raise CorpusUnavailable(
                f"content source did not answer within {self.corpus_timeout}s"
            ) from e
        except NoteDiscoveryError:
            raise
        except Exception as e:
            raise CorpusUnavailable(f"content source failed: {e}") from e
        finally:
            executor.shutdown(wait=False)

    def _bump(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        with self._stats_lock:
            stats = self._stats.copy()

        # Calculate averages
        if stats["total_queries"] > 0:
            stats["average_execution_time_ms"] = (
                stats["total_execution_time"] / stats["total_queries"]
            )
            stats["no_match_rate"] = stats["no_matches"] / stats["total_queries"]
        else:
            stats["average_execution_time_ms"] = 0.0
            stats["no_match_rate"] = 0.0

        snapshot = self._snapshot
        stats["corpus_stats"] = snapshot.get_stats() if snapshot else None
        stats["ledger_stats"] = self.ledger.get_stats()
        return stats

    def clear(self) -> None:
        """Drop the snapshot and reset statistics."""
        self._snapshot = None
        with self._stats_lock:
            self._stats = _empty_stats()
