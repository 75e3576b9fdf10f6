"""
Embeddings module for notemind.

Generates vector representations of notes and transcripts for semantic search.
"""

from notemind.embeddings.types import (
    EmbeddingVector,
    EmbeddingProvider,
    EmbeddingCacheStats,
    cosine_similarity,
)
from notemind.embeddings.cache import EmbeddingCache, CacheEntry
from notemind.embeddings.provider import HttpEmbeddingProvider

__all__ = [
    "EmbeddingVector",
    "EmbeddingProvider",
    "EmbeddingCacheStats",
    "cosine_similarity",
    "EmbeddingCache",
    "CacheEntry",
    "HttpEmbeddingProvider",
]
