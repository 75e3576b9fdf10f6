"""
Vector index models.
Defines how documents are fragmented and stored for semantic search.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from notemind.models.base import FrozenModel
from notemind.models.document import SourceType


def chunk_id(document_id: str, index: int) -> str:
    """Vector id of the ``index``-th chunk of a document."""
    return f"{document_id}_chunk_{index}"


class ChunkMetadata(FrozenModel):
    """
    Metadata stored next to each vector.
    Enough to rebuild a search result without the corpus.
    """

    document_id: str = Field(..., description="Parent document id")
    title: str = Field("", description="Parent document title")
    content_chunk: str = Field("", description="Chunk text (without the title prefix)")
    source_type: SourceType = Field(SourceType.NOTE)
    created_at: Optional[datetime] = Field(None)
    chunk_index: int = Field(0, ge=0)
    total_chunks: int = Field(1, ge=1)


class EmbeddingRecord(FrozenModel):
    """One vector entry: ``{document_id}_chunk_{i}`` plus its values and metadata."""

    id: str
    values: List[float]
    metadata: ChunkMetadata

    @field_validator("values")
    @classmethod
    def _non_empty(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("Embedding values cannot be empty")
        return v


class VectorMatch(FrozenModel):
    """
    A vector store hit.

    ``values`` is returned when the backend can provide it so the caller
    can compute its own cosine similarity; otherwise ``score`` is the
    backend's similarity.
    """

    id: str
    score: float = 0.0
    values: Optional[List[float]] = None
    metadata: ChunkMetadata
