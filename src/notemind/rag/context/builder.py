"""
Context window assembly.

Packs ranked search results into a single text block for the language
model, never exceeding a character budget chosen from result quality.
"""

from typing import List, Optional

from notemind.core.config import ContextConfig
from notemind.core.logging import logger
from notemind.core.tracing import MetricsCollector
from notemind.models.search import SearchResult

TRUNCATION_MARKER = "...\n\n"
NO_CONTENT = "No content"
TOPIC_PRIORITY_WEIGHT = 0.3


class ContextBuilder:
    """
    Builds budgeted context strings from search results.

    Entries look like ``[NOTE] Title:\\nsnippet\\n\\n`` and are added in
    priority order until the budget runs out. The entry that does not fit
    is truncated when enough body remains, otherwise building stops.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()
        self.metrics = MetricsCollector(namespace="rag.context")

    def limit_for(self, quality: float) -> int:
        """Character budget for a result set of the given quality."""
        if quality > self.config.high_quality_threshold:
            return self.config.high_quality_limit
        if quality > self.config.medium_quality_threshold:
            return self.config.medium_quality_limit
        return self.config.low_quality_limit

    @staticmethod
    def priority(result: SearchResult) -> float:
        return result.relevance + result.metadata.topic_relevance * TOPIC_PRIORITY_WEIGHT

    def order(self, results: List[SearchResult]) -> List[SearchResult]:
        return sorted(results, key=lambda r: (-self.priority(r), r.id))

    def _body(self, result: SearchResult) -> str:
        if result.snippet:
            return result.snippet
        if result.content:
            return result.content[: self.config.snippet_fallback_chars]
        return NO_CONTENT

    @staticmethod
    def _header(result: SearchResult) -> str:
        return f"[{str(result.source_type).upper()}] {result.title}:\n"

    def build(self, results: List[SearchResult], query: str, quality: float) -> str:
        """
        Assemble the context for ``query``.

        Args:
            results: Validated search results
            query: Original query (for logging)
            quality: Result-set quality in [0, 1]

        Returns:
            Context string whose length never exceeds ``limit_for(quality)``
        """
        limit = self.limit_for(quality)
        parts: List[str] = []
        used = 0
        truncated = False

        for result in self.order(results):
            header = self._header(result)
            body = self._body(result)
            entry = f"{header}{body}\n\n"

            if used + len(entry) <= limit:
                parts.append(entry)
                used += len(entry)
                continue

            room = limit - used - len(header) - len(TRUNCATION_MARKER)
            if room >= self.config.min_entry_body:
                entry = f"{header}{body[:room]}{TRUNCATION_MARKER}"
                parts.append(entry)
                used += len(entry)
                truncated = True
            break

        context = "".join(parts)
        self.metrics.gauge("last_context_chars", len(context))
        if truncated:
            self.metrics.increment("truncated_entries")

        logger.debug(
            "Context built",
            query=query[:50],
            entries=len(parts),
            chars=len(context),
            limit=limit,
        )
        return context
