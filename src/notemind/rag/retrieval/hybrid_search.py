"""
Hybrid search: semantic and keyword strategies run concurrently and merge.

Semantic results lead; documents found by both are fused and tagged
``hybrid``; keyword-only documents are appended unmodified.
"""

import asyncio
from typing import Iterable, List, Optional

from notemind.core.config import SearchConfig
from notemind.core.exceptions import AllStrategiesFailedError
from notemind.core.logging import logger
from notemind.models.document import Document
from notemind.models.search import HybridMetadata, SearchResult, sort_results
from notemind.rag.retrieval.keyword_search import KeywordSearchStrategy
from notemind.rag.retrieval.semantic_search import SemanticSearchStrategy


class HybridMerger:
    """
    Fuses semantic and keyword results.

    Rules:
    - In both lists: ``min(1.0, semantic + keyword * keyword_weight)``, tagged hybrid
    - Semantic only, relevance above ``high_similarity_cutoff``: multiplied by ``semantic_boost``
    - Keyword only: unchanged

    Failure handling:
    - Semantic branch raises: keyword results returned as they are
    - Keyword branch raises: semantic results merged alone
    - Both raise: AllStrategiesFailedError
    """

    name = "hybrid"

    def __init__(
        self,
        keyword: KeywordSearchStrategy,
        semantic: SemanticSearchStrategy,
        config: Optional[SearchConfig] = None,
    ):
        self.keyword = keyword
        self.semantic = semantic
        self.config = config or SearchConfig()

    async def search(self, corpus: Iterable[Document], query: str) -> List[SearchResult]:
        if not query or not query.strip():
            return []

        corpus = tuple(corpus)
        keyword_out, semantic_out = await asyncio.gather(
            self.keyword.search(corpus, query),
            self.semantic.retrieve(corpus, query),
            return_exceptions=True,
        )

        for outcome in (keyword_out, semantic_out):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome

        keyword_failed = isinstance(keyword_out, BaseException)
        semantic_failed = isinstance(semantic_out, BaseException)

        if keyword_failed and semantic_failed:
            logger.error(
                "All search strategies failed",
                keyword_error=str(keyword_out),
                semantic_error=str(semantic_out),
            )
            raise AllStrategiesFailedError(
                "Both keyword and semantic search failed",
                context={"keyword_error": str(keyword_out), "semantic_error": str(semantic_out)},
                cause=semantic_out if isinstance(semantic_out, Exception) else None,
            )

        if semantic_failed:
            logger.warning("Semantic search failed, using keyword results", error=str(semantic_out))
            return list(keyword_out)

        if keyword_failed:
            logger.warning("Keyword search failed, using semantic results", error=str(keyword_out))
            return self.merge(semantic_out, [])

        merged = self.merge(semantic_out, keyword_out)
        logger.debug(
            "Hybrid search completed",
            query=query[:50],
            semantic=len(semantic_out),
            keyword=len(keyword_out),
            merged=len(merged),
        )
        return merged

    def merge(self, semantic: List[SearchResult], keyword: List[SearchResult]) -> List[SearchResult]:
        """
        Merges two ranked lists.

        Returns:
            Results sorted by relevance desc, id asc, relevance in [0, 1]
        """
        keyword_by_id = {result.id: result for result in keyword}
        merged = {}

        for result in semantic:
            if result.id in merged:
                continue
            match = keyword_by_id.get(result.id)
            if match is not None:
                merged[result.id] = self._fuse(result, match)
            elif result.relevance > self.config.high_similarity_cutoff:
                merged[result.id] = result.with_relevance(result.relevance * self.config.semantic_boost)
            else:
                merged[result.id] = result

        for result in keyword:
            if result.id not in merged:
                merged[result.id] = result

        return sort_results(list(merged.values()))

    def _fuse(self, semantic: SearchResult, keyword: SearchResult) -> SearchResult:
        base = semantic.metadata.model_dump(exclude={"search_method", "similarity"})
        if not base.get("key_terms"):
            base["key_terms"] = list(keyword.metadata.key_terms)

        return semantic.model_copy(
            update={
                "relevance": min(1.0, semantic.relevance + keyword.relevance * self.config.keyword_weight),
                "snippet": semantic.snippet or keyword.snippet,
                "metadata": HybridMetadata(
                    **base,
                    similarity=getattr(semantic.metadata, "similarity", semantic.relevance),
                    keyword_relevance=keyword.relevance,
                ),
            }
        )
