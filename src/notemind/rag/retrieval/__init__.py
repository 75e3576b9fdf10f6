"""
Retrieval module for notemind.

Keyword, semantic and hybrid search plus re-ranking, caching and metrics.
"""

from notemind.rag.retrieval.keyword_search import KeywordSearchStrategy
from notemind.rag.retrieval.semantic_search import SemanticSearchStrategy
from notemind.rag.retrieval.hybrid_search import HybridMerger
from notemind.rag.retrieval.rerank import ResultProcessor
from notemind.rag.retrieval.cache import ResultCache, CacheEntry
from notemind.rag.retrieval.quality import result_quality
from notemind.rag.retrieval.metrics import RAGMetrics, get_rag_metrics

__all__ = [
    "KeywordSearchStrategy",
    "SemanticSearchStrategy",
    "HybridMerger",
    "ResultProcessor",
    "ResultCache",
    "CacheEntry",
    "result_quality",
    "RAGMetrics",
    "get_rag_metrics",
]
