"""
TTL cache for embeddings.

Keys are the SHA-256 of the (already truncated) input text, so a hit never
reaches the network.
"""

from dataclasses import dataclass
import hashlib
import threading
from collections import OrderedDict
from typing import Optional

from notemind.core.logging import logger
from notemind.core.utils.datetime_utils import Clock, system_clock
from notemind.embeddings.types import EmbeddingCacheStats, EmbeddingVector


@dataclass
class CacheEntry:
    """Cache entry with TTL.

    Attributes:
        embedding: Stored embedding vector
        created_at: Creation timestamp from the injected clock
    """

    embedding: EmbeddingVector
    created_at: float


class EmbeddingCache:
    """LRU cache with TTL, safe to share between threads.

    Uses OrderedDict for O(1) LRU eviction.

    Attributes:
        max_size: Maximum number of entries in cache
        ttl_seconds: Time to live in seconds for each entry
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 1800,
        clock: Optional[Clock] = None,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock or system_clock
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        logger.info("EmbeddingCache initialized", max_size=max_size, ttl_seconds=ttl_seconds)

    @staticmethod
    def key_for(text: str) -> str:
        """SHA256 of the text as hexadecimal string."""
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def get(self, text: str) -> Optional[EmbeddingVector]:
        """Gets embedding from cache if it exists and has not expired."""
        key = self.key_for(text)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._clock.now() - entry.created_at > self.ttl_seconds:
                del self._cache[key]
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return entry.embedding

    def set(self, text: str, embedding: EmbeddingVector) -> None:
        """Saves embedding in cache with LRU eviction if necessary."""
        key = self.key_for(text)
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = CacheEntry(embedding=embedding, created_at=self._clock.now())

    def cleanup_expired(self) -> int:
        """Deletes expired entries and returns how many were removed."""
        now = self._clock.now()
        with self._lock:
            expired = [k for k, e in self._cache.items() if now - e.created_at > self.ttl_seconds]
            for key in expired:
                del self._cache[key]

        if expired:
            logger.debug("Cleaned up expired embeddings", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            size = len(self._cache)
            self._cache.clear()
        logger.info("Embedding cache cleared", removed=size)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_stats(self) -> EmbeddingCacheStats:
        now = self._clock.now()
        with self._lock:
            ages = [now - entry.created_at for entry in self._cache.values()]
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "oldest_entry_age": max(ages) if ages else None,
            }
