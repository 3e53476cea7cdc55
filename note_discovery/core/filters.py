"""Conjunctive facet filtering over match candidates."""

from typing import Callable, Collection, List, Optional, Sequence

from ..models.content import ContentItem, MatchResult, SearchFilters
from .errors import ConfigurationError

Predicate = Callable[[ContentItem], bool]


class FacetFilter:
    """Applies subject, university, file kind and rating predicates."""

    def apply(self, candidates: Sequence[MatchResult], filters: Optional[SearchFilters]) -> List[MatchResult]:
        """
        Keep the candidates that satisfy every set filter.

        Relative order is preserved. Impossible combinations give an empty
        list; this method never raises.

        Args:
            candidates: Matcher output (or unscored corpus)
            filters: Facet selection, None meaning no filtering

        Returns:
            Filtered subsequence of candidates
        """
        predicates = self.predicates(filters)
        if not predicates:
            return list(candidates)
        return [c for c in candidates if all(p(c.item) for p in predicates)]

    def predicates(self, filters: Optional[SearchFilters]) -> List[Predicate]:
        """Build one predicate per set filter."""
        if filters is None:
            return []

        predicates: List[Predicate] = []

        if filters.subject_id:
            subject_id = filters.subject_id
            predicates.append(lambda item: item.subject is not None and item.subject.id == subject_id)

        if filters.university:
            needle = filters.university.lower()
            predicates.append(
                lambda item: item.university is not None and needle in item.university.lower()
            )

        if filters.file_kind is not None:
            kind = filters.file_kind
            predicates.append(lambda item: item.file_kind == kind)

        if filters.min_rating is not None:
            min_rating = filters.min_rating
            # Unrated items count as 0
            predicates.append(lambda item: (item.average_rating or 0.0) >= min_rating)

        return predicates

    @staticmethod
    def validate(filters: Optional[SearchFilters], known_subject_ids: Collection[str]) -> None:
        """
        Check filters against the current corpus.

        Raises:
            ConfigurationError: if the subject filter names an unknown subject
        """
        if filters is None or not filters.subject_id:
            return
        if filters.subject_id not in known_subject_ids:
            raise ConfigurationError(f"unknown subject: {filters.subject_id}")
