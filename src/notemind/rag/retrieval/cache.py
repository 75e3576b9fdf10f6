"""
Quality-aware cache for search results.

Entries expire after a TTL. When the cache grows past its capacity it
keeps the ``target`` entries with the best (quality, timestamp).
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from notemind.core.logging import logger
from notemind.core.tracing import MetricsCollector
from notemind.core.utils.datetime_utils import Clock, system_clock
from notemind.models.search import SearchResult, SearchStrategy
from notemind.rag.retrieval.quality import result_quality
from notemind.rag.retrieval.text_utils import normalize_query


@dataclass(frozen=True)
class CacheEntry:
    """Cached result list."""

    results: Tuple[SearchResult, ...]
    timestamp: float
    quality: float
    strategy: str


class ResultCache:
    """
    Cache of final search results keyed by (normalized query, strategy).

    Every operation holds one threading.Lock; operations are short and
    synchronous, so the same instance is safe from worker threads and the
    event loop.
    """

    def __init__(
        self,
        ttl_seconds: float = 90,
        capacity: int = 25,
        target: int = 20,
        clock: Optional[Clock] = None,
    ):
        if target >= capacity:
            raise ValueError("target must be lower than capacity")
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self.target = target
        self._clock = clock or system_clock
        self._entries: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self.metrics = MetricsCollector()

        logger.info("ResultCache initialized", ttl=ttl_seconds, capacity=capacity, target=target)

    @staticmethod
    def make_key(query: str, strategy: Union[str, SearchStrategy]) -> str:
        """
        Cache key from query and strategy.

        "  Joe  ROGAN " and "joe rogan" share a key.
        """
        return f"{normalize_query(query)}::{getattr(strategy, 'value', strategy)}"

    def get(self, query: str, strategy: Union[str, SearchStrategy]) -> Optional[List[SearchResult]]:
        """
        Cached results or None if absent, expired or unreadable.

        Returns a fresh list; results themselves are immutable.
        """
        key = self.make_key(query, strategy)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.metrics.increment("rag.retrieval.cache.misses")
                return None

            if not self._is_consistent(entry):
                del self._entries[key]
                self.metrics.increment("rag.retrieval.cache.misses")
                self.metrics.increment("rag.retrieval.cache.corrupted")
                logger.warning("Dropped inconsistent cache entry", key=key[:60])
                return None

            if self._clock.now() - entry.timestamp >= self.ttl_seconds:
                del self._entries[key]
                self.metrics.increment("rag.retrieval.cache.misses")
                self.metrics.increment("rag.retrieval.cache.expirations")
                return None

            self.metrics.increment("rag.retrieval.cache.hits")
            return list(entry.results)

    def set(
        self, query: str, strategy: Union[str, SearchStrategy], results: Sequence[SearchResult]
    ) -> None:
        """
        Stores results; trims to ``target`` entries when size exceeds capacity.
        """
        key = self.make_key(query, strategy)
        entry = CacheEntry(
            results=tuple(results),
            timestamp=self._clock.now(),
            quality=result_quality(results),
            strategy=str(getattr(strategy, "value", strategy)),
        )

        with self._lock:
            self._entries[key] = entry
            if len(self._entries) > self.capacity:
                self._evict_locked()
            self.metrics.gauge("rag.retrieval.cache.size", len(self._entries))

        logger.debug("Cached results", query=query[:50], results=len(entry.results), quality=entry.quality)

    def _evict_locked(self) -> None:
        valid = {k: e for k, e in self._entries.items() if self._is_consistent(e)}
        ranked = sorted(valid.items(), key=lambda item: (-item[1].quality, -item[1].timestamp, item[0]))
        kept = dict(ranked[: self.target])
        evicted = len(self._entries) - len(kept)
        self._entries = kept
        self.metrics.increment("rag.retrieval.cache.evictions", evicted)
        logger.debug("Evicted low quality cache entries", evicted=evicted, size=len(kept))

    @staticmethod
    def _is_consistent(entry: Any) -> bool:
        return (
            isinstance(entry, CacheEntry)
            and isinstance(entry.results, tuple)
            and all(isinstance(r, SearchResult) for r in entry.results)
        )

    def invalidate_document(self, document_id: str) -> int:
        """
        Drops every entry that contains the document.

        Called when a document is re-indexed or removed.
        """
        with self._lock:
            doomed = [
                key
                for key, entry in self._entries.items()
                if not self._is_consistent(entry) or any(r.id == document_id for r in entry.results)
            ]
            for key in doomed:
                del self._entries[key]

        if doomed:
            self.metrics.increment("rag.retrieval.cache.invalidations", len(doomed))
            logger.info("Invalidated cache entries for document", count=len(doomed), document_id=document_id)
        return len(doomed)

    def clear(self) -> None:
        """Clear entire cache."""
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        self.metrics.increment("rag.retrieval.cache.clears")
        self.metrics.gauge("rag.retrieval.cache.size", 0)
        logger.info("Cleared cache", entries_removed=size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_hit_rate(self) -> float:
        hits = self.metrics.get("rag.retrieval.cache.hits")
        misses = self.metrics.get("rag.retrieval.cache.misses")
        total = hits + misses
        return hits / total if total else 0.0

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with size, capacity, ttl and hit/eviction counters
        """
        with self._lock:
            size = len(self._entries)
        return {
            "size": size,
            "capacity": self.capacity,
            "target": self.target,
            "ttl": self.ttl_seconds,
            "hits": self.metrics.get("rag.retrieval.cache.hits"),
            "misses": self.metrics.get("rag.retrieval.cache.misses"),
            "hit_rate": self.get_hit_rate(),
            "evictions": self.metrics.get("rag.retrieval.cache.evictions"),
            "expirations": self.metrics.get("rag.retrieval.cache.expirations"),
            "invalidations": self.metrics.get("rag.retrieval.cache.invalidations"),
        }
