"""Approximate matching of free-text queries against content items."""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process
from rapidfuzz.distance import Levenshtein

from ..models.content import ContentItem, MatchResult
from .errors import ConfigurationError
from .normalizer import TextNormalizer

DEFAULT_THRESHOLD = 0.3

DEFAULT_FIELD_WEIGHTS: Dict[str, float] = {
    "title": 1.0,
    "description": 0.6,
    "tags": 0.6,
    "subject": 0.3,
    "author": 0.3,
}


class FuzzyMatcher:
    """
    Scores items against a query by windowed edit distance over weighted fields.

    Scores live on a 0 (identical) to 1 (unrelated) scale. For each field the
    query is compared with every window of the field text whose length is
    within one character of the query, and the closest window gives the field
    distance. The item score is the weighted minimum over fields, so the best
    matching field dominates and lighter fields need a closer match to count.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        field_weights: Optional[Mapping[str, float]] = None,
        field_penalty: float = 0.05,
        scan_limit: int = 256,
    ) -> None:
        """
        Initialize the fuzzy matcher.

        Args:
            threshold: Items must score strictly below this value to match
            field_weights: Relative importance per field (title, description, tags, subject, author)
            field_penalty: Extra distance added to lighter fields, scaled by (1 - weight)
            scan_limit: Fields longer than this are scanned only around the best alignment
        """
        self.threshold = self._check_threshold(threshold)
        self.field_penalty = field_penalty
        self.scan_limit = scan_limit
        self.normalizer = TextNormalizer()
        self.field_weights = self._normalize_weights(field_weights or DEFAULT_FIELD_WEIGHTS)

    @staticmethod
    def _check_threshold(threshold: float) -> float:
        if not 0.0 < threshold <= 1.0:
            raise ConfigurationError(f"threshold must be in (0, 1], got {threshold}")
        return threshold

    @staticmethod
    def _normalize_weights(weights: Mapping[str, float]) -> Dict[str, float]:
        unknown = set(weights) - set(DEFAULT_FIELD_WEIGHTS)
        if unknown:
            raise ConfigurationError(f"unknown fields in weights: {sorted(unknown)}")
        if any(w < 0 for w in weights.values()):
            raise ConfigurationError("field weights cannot be negative")
        heaviest = max(weights.values(), default=0.0)
        if heaviest <= 0:
            raise ConfigurationError("at least one field weight must be positive")
        # Zero-weight fields are not searched at all
        return {field: w / heaviest for field, w in weights.items() if w > 0}

    def match(
        self,
        query: str,
        corpus: Sequence[ContentItem],
        threshold: Optional[float] = None,
    ) -> List[MatchResult]:
        """
        Rank the corpus against a query.

        Args:
            query: Free-text query; blank queries return the corpus unscored
            corpus: Items to rank
            threshold: Custom threshold (uses instance threshold if None)

        Returns:
            MatchResults ordered by ascending score, ties in corpus order
        """
        threshold = self.threshold if threshold is None else self._check_threshold(threshold)
        normalized_query = self.normalizer.normalize(query or "")

        if not normalized_query:
            return [MatchResult(item=item, score=0.0) for item in corpus]

        results = []
        for item in corpus:
            score, field = self.score_item(normalized_query, item)
            if score < threshold:
                results.append(MatchResult(item=item, score=score, matched_field=field))

        # list.sort is stable, so equal scores keep corpus order
        results.sort(key=lambda r: r.score)
        return results

    def score_item(self, normalized_query: str, item: ContentItem) -> Tuple[float, Optional[str]]:
        """
        Score one item against an already normalized query.

        Returns:
            Tuple of (score, name of the best matching field or None)
        """
        best_score = 1.0
        best_field = None

        for field, weight in self.field_weights.items():
            penalty = (1.0 - weight) * self.field_penalty
            if penalty >= best_score:
                continue
            for text in self._field_texts(item, field):
                distance = self.field_distance(normalized_query, self.normalizer.normalize(text))
                score = min(1.0, distance / weight + penalty)
                if score < best_score:
                    best_score = score
                    best_field = field
                if best_score == 0.0:
                    return best_score, best_field

        return best_score, best_field

    def field_distance(self, query: str, text: str) -> float:
        """
        Smallest normalized Levenshtein distance between the query and any window of text.

        Both arguments must already be normalized.
        """
        if not query or not text:
            return 1.0
        if query in text:
            return 0.0

        query_len = len(query)
        if len(text) <= query_len:
            return Levenshtein.normalized_distance(query, text)

        if len(text) > self.scan_limit:
            # Only refine around the best InDel alignment for long texts
            alignment = fuzz.partial_ratio_alignment(query, text)
            start = max(0, alignment.dest_start - 2)
            end = min(len(text), alignment.dest_end + 2)
            text = text[start:end]

        best = 1.0
        for size in (query_len - 1, query_len, query_len + 1):
            if size < 1 or size > len(text):
                continue
            for start in range(len(text) - size + 1):
                distance = Levenshtein.normalized_distance(
                    query, text[start:start + size], score_cutoff=best
                )
                if distance < best:
                    best = distance
        return best

    @staticmethod
    def _field_texts(item: ContentItem, field: str) -> Iterable[str]:
        if field == "title":
            return (item.title,)
        if field == "description":
            return (item.description,) if item.description else ()
        if field == "tags":
            return item.tags
        if field == "subject":
            return (item.subject.name,) if item.subject and item.subject.name else ()
        if field == "author":
            return (item.author,) if item.author else ()
        return ()

    def suggest(
        self,
        query: str,
        corpus: Sequence[ContentItem],
        max_suggestions: int = 5,
        min_similarity: float = 50.0,
    ) -> List[str]:
        """
        Suggest titles, tags or title words close to a query.

        Args:
            query: Query to get suggestions for
            corpus: Items whose titles and tags are candidates
            max_suggestions: Maximum number of suggestions
            min_similarity: Minimum rapidfuzz ratio (0-100)

        Returns:
            List of normalized suggestions, best first
        """
        normalized_query = self.normalizer.normalize(query or "")
        if not normalized_query or not corpus:
            return []

        candidates = set()
        for item in corpus:
            candidates.add(self.normalizer.normalize(item.title))
            candidates.update(self.normalizer.normalize(tag) for tag in item.tags)
            candidates.update(t for t in self.normalizer.tokenize(item.title) if len(t) > 2)
        candidates.discard("")
        candidates.discard(normalized_query)

        # Sorted so ties resolve identically across runs
        suggestions = process.extract(
            normalized_query,
            sorted(candidates),
            limit=max_suggestions,
            scorer=fuzz.ratio,
            score_cutoff=min_similarity,
        )
        return [suggestion[0] for suggestion in suggestions]
