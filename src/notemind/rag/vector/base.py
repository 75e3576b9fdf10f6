"""
Vector store interface.
"""

from typing import List, Protocol, runtime_checkable

from notemind.embeddings.types import EmbeddingVector
from notemind.models.chunk import EmbeddingRecord, VectorMatch


@runtime_checkable
class VectorStore(Protocol):
    """
    Where chunk embeddings live.

    Implementations raise VectorBackendError on backend failures.
    """

    async def upsert(self, records: List[EmbeddingRecord]) -> int:
        """Stores records, replacing any with the same id; returns how many were stored."""
        ...

    async def query(self, vector: EmbeddingVector, top_k: int) -> List[VectorMatch]:
        """Nearest ``top_k`` chunks, most similar first."""
        ...

    async def delete_document(self, document_id: str) -> int:
        """Removes every chunk of a document; returns how many were removed."""
        ...
