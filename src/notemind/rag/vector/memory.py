"""
In-process vector store backed by NumPy.
"""

import threading
from typing import Dict, List

import numpy as np

from notemind.core.logging import logger
from notemind.embeddings.types import EmbeddingVector
from notemind.models.chunk import EmbeddingRecord, VectorMatch


class InMemoryVectorStore:
    """
    Brute force cosine search over every stored chunk.

    Suitable for a single user's notes; the default backend.
    """

    def __init__(self) -> None:
        self._records: Dict[str, EmbeddingRecord] = {}
        self._vectors: Dict[str, np.ndarray] = {}
        self._lock = threading.Lock()

    async def upsert(self, records: List[EmbeddingRecord]) -> int:
        with self._lock:
            for record in records:
                self._records[record.id] = record
                self._vectors[record.id] = np.asarray(record.values, dtype=np.float32)
        logger.debug("Vectors upserted", count=len(records), total=len(self._records))
        return len(records)

    async def query(self, vector: EmbeddingVector, top_k: int) -> List[VectorMatch]:
        if top_k <= 0:
            return []

        query = vector.numpy
        query_norm = float(np.linalg.norm(query))

        with self._lock:
            items = [
                (record_id, stored)
                for record_id, stored in self._vectors.items()
                if stored.shape == query.shape
            ]
            records = dict(self._records)

        if not items or query_norm == 0.0:
            return []

        ids = [record_id for record_id, _ in items]
        matrix = np.vstack([stored for _, stored in items])
        norms = np.linalg.norm(matrix, axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / (norms * query_norm), 0.0)

        order = sorted(range(len(ids)), key=lambda i: (-float(scores[i]), ids[i]))[:top_k]
        return [
            VectorMatch(
                id=ids[i],
                score=float(scores[i]),
                values=records[ids[i]].values,
                metadata=records[ids[i]].metadata,
            )
            for i in order
        ]

    async def delete_document(self, document_id: str) -> int:
        with self._lock:
            doomed = [
                record_id
                for record_id, record in self._records.items()
                if record.metadata.document_id == document_id
            ]
            for record_id in doomed:
                del self._records[record_id]
                del self._vectors[record_id]
        if doomed:
            logger.debug("Vectors deleted", document_id=document_id, count=len(doomed))
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._vectors.clear()
