"""
Weaviate (v3 client) vector store.

The v3 client is synchronous, so every call runs in a worker thread.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional

from notemind.core.exceptions import VectorBackendError
from notemind.core.logging import logger
from notemind.core.utils.datetime_utils import format_iso, parse_iso_datetime
from notemind.embeddings.types import EmbeddingVector
from notemind.models.chunk import ChunkMetadata, EmbeddingRecord, VectorMatch

PROPERTIES = [
    "chunk_id",
    "document_id",
    "title",
    "content_chunk",
    "source_type",
    "created_at",
    "chunk_index",
    "total_chunks",
]


class WeaviateVectorStore:
    """
    Stores chunk vectors in a Weaviate class (default ``NoteChunk``).

    Vectors are supplied by notemind (no Weaviate vectorizer module).
    """

    def __init__(
        self,
        client: Any = None,
        url: str = "http://localhost:8080",
        class_name: str = "NoteChunk",
    ) -> None:
        if client is None:
            try:
                import weaviate  # type: ignore

                client = weaviate.Client(url)
            except Exception as e:
                logger.error("Weaviate client initialization failed", url=url, error=str(e))
                raise VectorBackendError(
                    "Could not connect to Weaviate",
                    context={"service": "weaviate", "url": url},
                    cause=e,
                )
        self.client = client
        self.class_name = class_name

    @staticmethod
    def object_uuid(record_id: str) -> str:
        """Deterministic Weaviate uuid for a chunk id."""
        return str(uuid.uuid5(uuid.NAMESPACE_URL, record_id))

    def _to_properties(self, record: EmbeddingRecord) -> Dict[str, Any]:
        meta = record.metadata
        return {
            "chunk_id": record.id,
            "document_id": meta.document_id,
            "title": meta.title,
            "content_chunk": meta.content_chunk,
            "source_type": meta.source_type,
            "created_at": format_iso(meta.created_at) if meta.created_at else None,
            "chunk_index": meta.chunk_index,
            "total_chunks": meta.total_chunks,
        }

    @staticmethod
    def _to_metadata(item: Dict[str, Any]) -> ChunkMetadata:
        created_at = item.get("created_at")
        return ChunkMetadata(
            document_id=item.get("document_id", ""),
            title=item.get("title") or "",
            content_chunk=item.get("content_chunk") or "",
            source_type=item.get("source_type") or "note",
            created_at=parse_iso_datetime(created_at) if created_at else None,
            chunk_index=item.get("chunk_index") or 0,
            total_chunks=item.get("total_chunks") or 1,
        )

    async def upsert(self, records: List[EmbeddingRecord]) -> int:
        if not records:
            return 0

        def _do_upsert() -> int:
            with self.client.batch as batch:
                for record in records:
                    batch.add_data_object(
                        data_object=self._to_properties(record),
                        class_name=self.class_name,
                        uuid=self.object_uuid(record.id),
                        vector=EmbeddingVector(record.values).to_weaviate(),
                    )
            return len(records)

        try:
            return await asyncio.to_thread(_do_upsert)
        except Exception as e:
            logger.error("Weaviate upsert failed", count=len(records), error=str(e))
            raise VectorBackendError(
                "Weaviate upsert failed", context={"service": "weaviate", "count": len(records)}, cause=e
            )

    async def query(self, vector: EmbeddingVector, top_k: int) -> List[VectorMatch]:
        def _do_query() -> Dict[str, Any]:
            return (
                self.client.query.get(self.class_name, PROPERTIES)
                .with_near_vector({"vector": vector.to_weaviate()})
                .with_limit(top_k)
                .with_additional(["certainty", "vector"])
                .do()
            )

        try:
            response = await asyncio.to_thread(_do_query)
        except Exception as e:
            logger.error("Weaviate query failed", error=str(e))
            raise VectorBackendError("Weaviate query failed", context={"service": "weaviate"}, cause=e)

        if response.get("errors"):
            raise VectorBackendError(
                "Weaviate query returned errors",
                context={"service": "weaviate", "errors": str(response["errors"])[:200]},
            )

        items = (response.get("data") or {}).get("Get", {}).get(self.class_name) or []
        matches = []
        for item in items:
            additional = item.get("_additional") or {}
            matches.append(
                VectorMatch(
                    id=item.get("chunk_id") or "",
                    score=float(additional.get("certainty") or 0.0),
                    values=additional.get("vector"),
                    metadata=self._to_metadata(item),
                )
            )
        return matches

    async def delete_document(self, document_id: str) -> int:
        where = {"path": ["document_id"], "operator": "Equal", "valueText": document_id}

        def _do_delete() -> Optional[Dict[str, Any]]:
            return self.client.batch.delete_objects(class_name=self.class_name, where=where)

        try:
            result = await asyncio.to_thread(_do_delete)
        except Exception as e:
            logger.error("Weaviate delete failed", document_id=document_id, error=str(e))
            raise VectorBackendError(
                "Weaviate delete failed",
                context={"service": "weaviate", "document_id": document_id},
                cause=e,
            )
        return int(((result or {}).get("results") or {}).get("successful") or 0)
