"""
Heuristic re-ranking and context preparation for search results.

Re-orders results using recency, key terms and topic relevance.
No ML, just heuristics.
"""

from typing import List, Optional

from notemind.core.logging import logger
from notemind.core.utils.datetime_utils import Clock, age_in_days, system_clock
from notemind.models.search import SearchResult, sort_results
from notemind.rag.retrieval.text_utils import generate_context_snippet, topic_relevance

RECENT_DAYS = 7
RECENT_BOOST = 0.1
MONTH_DAYS = 30
MONTH_BOOST = 0.05
KEY_TERMS_MIN = 3
KEY_TERMS_BOOST = 0.05
TOPIC_THRESHOLD = 0.7
TOPIC_BOOST = 0.1


class ResultProcessor:
    """
    Prepares ranked results for the context window.

    1. ``optimize_for_context``: best-sentence snippets plus topic relevance
    2. ``rerank``: additive boosts, clamped to 1.0, then re-sorted
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or system_clock

    def optimize_for_context(self, results: List[SearchResult], query: str) -> List[SearchResult]:
        """
        Replaces snippets with the sentences densest in query words and
        records ``topic_relevance`` in the metadata.
        """
        optimized = []
        for result in results:
            if not result.content:
                optimized.append(result)
                continue
            updated = result.with_metadata(topic_relevance=topic_relevance(result.content, query))
            optimized.append(
                updated.model_copy(update={"snippet": generate_context_snippet(result.content, query)})
            )
        return optimized

    def boost_for(self, result: SearchResult) -> float:
        """Total additive boost earned by a result."""
        boost = 0.0
        metadata = result.metadata

        if metadata.created_at is not None:
            days = age_in_days(metadata.created_at, now=self.clock.utc_now())
            if days < RECENT_DAYS:
                boost += RECENT_BOOST
            elif days < MONTH_DAYS:
                boost += MONTH_BOOST

        if len(metadata.key_terms) > KEY_TERMS_MIN:
            boost += KEY_TERMS_BOOST

        if metadata.topic_relevance > TOPIC_THRESHOLD:
            boost += TOPIC_BOOST

        return boost

    def rerank(self, results: List[SearchResult]) -> List[SearchResult]:
        """
        Applies the boosts.

        - +0.1 for content under 7 days old, +0.05 under 30 days
        - +0.05 for more than 3 key terms
        - +0.1 for topic relevance above 0.7

        Returns:
            Results sorted by relevance desc, id asc
        """
        if not results:
            return results

        reranked = [result.with_relevance(result.relevance + self.boost_for(result)) for result in results]
        changes = [after.relevance - before.relevance for before, after in zip(results, reranked)]
        logger.debug(
            "Reranked results",
            count=len(results),
            boosted=sum(1 for c in changes if c > 0),
        )
        return sort_results(reranked)
