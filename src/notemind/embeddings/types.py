"""
Standard types for the embeddings module.

Defines EmbeddingVector as the single embedding format throughout notemind
and the EmbeddingProvider protocol every backend implements.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, TypedDict, Union, runtime_checkable

import numpy as np


@dataclass
class EmbeddingVector:
    """Standard representation of embeddings in notemind.

    Internally uses NumPy for efficiency. The dimension is whatever the
    provider returns; vectors are NOT normalized, so stored values match
    what the provider produced.

    Attributes:
        _data: 1-D NumPy array (float32)
    """

    _data: np.ndarray

    def __init__(self, data: Union[np.ndarray, List[float]]):
        """Initializes the embedding with validation.

        Args:
            data: Vector as NumPy array or list of floats

        Raises:
            ValueError: If the vector is not 1-D, is empty or has non-finite values
        """
        if isinstance(data, np.ndarray):
            self._data = data.astype(np.float32)
        else:
            self._data = np.asarray(list(data), dtype=np.float32)

        if self._data.ndim != 1 or self._data.shape[0] == 0:
            raise ValueError(f"Embedding must be a non-empty 1-D vector, has shape {self._data.shape}")
        if not np.all(np.isfinite(self._data)):
            raise ValueError("Embedding contains NaN or infinite values")

    @property
    def numpy(self) -> np.ndarray:
        """For efficient mathematical operations."""
        return self._data

    @property
    def list(self) -> List[float]:
        """For generic serialization."""
        return self._data.tolist()

    def to_weaviate(self) -> List[float]:
        """Weaviate needs float64 to avoid known bugs."""
        return self._data.astype(np.float64).tolist()

    @property
    def dimension(self) -> int:
        return int(self._data.shape[0])

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self._data))

    def cosine_similarity(self, other: Union["EmbeddingVector", np.ndarray, List[float]]) -> float:
        """Cosine similarity ``dot(a, b) / (|a| |b|)``.

        Returns 0.0 if either norm is 0 or the dimensions differ.
        """
        return cosine_similarity(self._data, other)


def cosine_similarity(
    a: Union[EmbeddingVector, np.ndarray, List[float]],
    b: Union[EmbeddingVector, np.ndarray, List[float]],
) -> float:
    """Cosine similarity between two vectors; 0.0 on zero norm or shape mismatch."""
    va = a.numpy if isinstance(a, EmbeddingVector) else np.asarray(a, dtype=np.float32)
    vb = b.numpy if isinstance(b, EmbeddingVector) else np.asarray(b, dtype=np.float32)
    if va.shape != vb.shape:
        return 0.0
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into a vector.

    Implementations raise EmbeddingError when the provider or network fails.
    """

    async def embed(self, text: str) -> EmbeddingVector: ...


class EmbeddingCacheStats(TypedDict):
    """Embedding cache statistics."""

    size: int
    max_size: int
    ttl_seconds: float
    hits: int
    misses: int
    oldest_entry_age: Optional[float]
