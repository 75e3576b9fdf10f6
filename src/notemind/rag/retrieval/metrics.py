"""
RAG-specific metrics collection.

Uses the core MetricsCollector to track retrieval latency, cache
efficiency and how much validation filters out.
"""

import threading
from typing import Any, Dict, List

from notemind.core.logging import logger
from notemind.core.tracing import MetricsCollector


class RAGMetrics:
    """
    Metrics collector for retrieval operations.

    Uses core MetricsCollector via composition (NOT inheritance).
    """

    def __init__(self):
        self.collector = MetricsCollector(namespace="rag")
        self._lock = threading.Lock()

        self.search_count = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.failures = 0
        self.total_results_returned = 0

        self.latencies: Dict[str, List[float]] = {
            "search_hybrid": [],
            "search_semantic": [],
            "search_keyword": [],
        }

    def record_search(
        self,
        query: str,
        latency_ms: float,
        cache_hit: bool,
        result_count: int,
        search_type: str = "hybrid",
    ):
        """
        Record a search operation.

        Args:
            query: Search query (for logging)
            latency_ms: Search latency in milliseconds
            cache_hit: Whether results came from cache
            result_count: Number of results returned
            search_type: hybrid, semantic or keyword
        """
        with self._lock:
            self.latencies.setdefault(f"search_{search_type}", []).append(latency_ms)
            self.search_count += 1
            self.total_results_returned += result_count
            if cache_hit:
                self.cache_hits += 1
            else:
                self.cache_misses += 1

        self.collector.increment(f"{search_type}_searches")
        self.collector.increment("total_results_returned", result_count)

        logger.debug(
            "Search recorded",
            query=query[:50],
            search_type=search_type,
            latency_ms=latency_ms,
            cache_hit=cache_hit,
            result_count=result_count,
        )

    def record_failure(self, search_type: str, error: str):
        with self._lock:
            self.failures += 1
        self.collector.increment(f"{search_type}_failures")
        logger.debug("Search failure recorded", search_type=search_type, error=error)

    def record_filter_impact(self, filter_type: str, before_count: int, after_count: int):
        """
        Record impact of filters on result count.

        Args:
            filter_type: Type of filter applied
            before_count: Results before filtering
            after_count: Results after filtering
        """
        reduction = before_count - after_count
        reduction_ratio = reduction / before_count if before_count > 0 else 0

        self.collector.gauge(f"filter_{filter_type}_last_reduction", reduction)
        self.collector.gauge(f"filter_{filter_type}_last_ratio", reduction_ratio)
        self.collector.increment(f"filter_{filter_type}_removed", reduction)

        logger.debug(
            "Filter impact",
            filter_type=filter_type,
            reduction=reduction,
            reduction_ratio=reduction_ratio,
        )

    def record_rerank_impact(self, score_changes: List[float]):
        """
        Record impact of re-ranking on scores.

        Args:
            score_changes: List of score deltas
        """
        if not score_changes:
            return

        self.collector.gauge("rerank_avg_change", sum(score_changes) / len(score_changes))
        self.collector.gauge("rerank_max_change", max(abs(c) for c in score_changes))

    def get_cache_hit_rate(self) -> float:
        """Hit rate as a fraction (0.0 to 1.0)."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total

    def get_average_latency(self, operation: str = "search_hybrid") -> float:
        values = self.latencies.get(operation) or []
        return sum(values) / len(values) if values else 0.0

    def get_p95_latency(self, operation: str = "search_hybrid") -> float:
        values = sorted(self.latencies.get(operation) or [])
        if not values:
            return 0.0
        index = int(len(values) * 0.95)
        return values[min(index, len(values) - 1)]

    def get_search_summary(self) -> Dict[str, Any]:
        """
        Get search metrics summary.

        Returns:
            Dict with all search-related metrics
        """
        collector_metrics = self.collector.get_metrics()

        return {
            "total_searches": self.search_count,
            "failures": self.failures,
            "avg_latency_ms": self.get_average_latency("search_hybrid"),
            "p95_latency_ms": self.get_p95_latency("search_hybrid"),
            "cache_hit_rate": self.get_cache_hit_rate(),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "total_results_returned": self.total_results_returned,
            "avg_results_per_search": (
                self.total_results_returned / self.search_count if self.search_count > 0 else 0
            ),
            "semantic_searches": collector_metrics.get("rag.semantic_searches", 0),
            "keyword_searches": collector_metrics.get("rag.keyword_searches", 0),
            "hybrid_searches": collector_metrics.get("rag.hybrid_searches", 0),
            "validation_removed": collector_metrics.get("rag.filter_validation_removed", 0),
        }

    def log_summary(self):
        summary = self.get_search_summary()
        logger.info(
            "RAG Metrics Summary",
            searches=summary["total_searches"],
            avg_latency_ms=summary["avg_latency_ms"],
            cache_hit_rate=summary["cache_hit_rate"],
        )

    def reset_counters(self):
        """Reset all counters (useful for testing)."""
        with self._lock:
            self.search_count = 0
            self.cache_hits = 0
            self.cache_misses = 0
            self.failures = 0
            self.total_results_returned = 0
            for key in self.latencies:
                self.latencies[key] = []
        self.collector = MetricsCollector(namespace="rag")


_rag_metrics = None
_rag_metrics_lock = threading.Lock()


def get_rag_metrics() -> RAGMetrics:
    """Get the global RAG metrics instance."""
    global _rag_metrics
    if _rag_metrics is None:
        with _rag_metrics_lock:
            if _rag_metrics is None:
                _rag_metrics = RAGMetrics()
    return _rag_metrics
