"""
Result set quality score.

quality = 0.5 * mean relevance
        + 0.3 * (distinct source types / 2)
        + 0.2 * fraction of results with more than 500 chars of content
"""

from typing import Sequence

from notemind.models.search import SearchResult

RELEVANCE_WEIGHT = 0.5
DIVERSITY_WEIGHT = 0.3
DEPTH_WEIGHT = 0.2
SOURCE_TYPE_COUNT = 2
DEEP_CONTENT_CHARS = 500


def result_quality(results: Sequence[SearchResult]) -> float:
    """Quality in [0, 1]; an empty result set scores 0."""
    if not results:
        return 0.0

    mean_relevance = sum(r.relevance for r in results) / len(results)
    diversity = len({r.source_type for r in results}) / SOURCE_TYPE_COUNT
    depth = sum(1 for r in results if r.metadata.content_length > DEEP_CONTENT_CHARS) / len(results)

    quality = RELEVANCE_WEIGHT * mean_relevance + DIVERSITY_WEIGHT * diversity + DEPTH_WEIGHT * depth
    return max(0.0, min(1.0, quality))
