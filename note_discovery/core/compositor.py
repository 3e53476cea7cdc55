"""Merging of free and premium results into one display list."""

from typing import List, Mapping, Optional, Sequence

from ..models.content import MatchResult, RankedItem


class ResultCompositor:
    """Interleaves tiers by relevance; tier itself never affects the order."""

    def compose(
        self,
        free_results: Sequence[MatchResult],
        premium_results: Sequence[MatchResult],
        corpus_order: Mapping[str, int],
        max_results: Optional[int] = None,
    ) -> List[RankedItem]:
        """
        Merge both tiers into one ranked list.

        Args:
            free_results: Filtered matcher output for free items
            premium_results: Filtered matcher output for premium items
            corpus_order: Item id -> position in the corpus, breaks score ties
            max_results: Truncate after merging when set

        Returns:
            RankedItems ordered by score, then corpus position
        """
        fallback = len(corpus_order)
        merged = sorted(
            [*free_results, *premium_results],
            key=lambda r: (r.score, corpus_order.get(r.item.id, fallback)),
        )
        if max_results is not None:
            merged = merged[:max_results]

        return [
            RankedItem(
                item=result.item,
                relevance_score=result.score,
                tier=result.item.tier,
                credit_price=result.item.credit_price,
                matched_field=result.matched_field,
            )
            for result in merged
        ]
