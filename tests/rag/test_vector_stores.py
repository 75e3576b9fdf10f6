from unittest.mock import MagicMock

import pytest

from notemind.core.config import VectorConfig
from notemind.core.exceptions import ConfigurationError, VectorBackendError
from notemind.embeddings.types import EmbeddingVector
from notemind.models.chunk import ChunkMetadata, EmbeddingRecord
from notemind.rag.vector import InMemoryVectorStore, WeaviateVectorStore, create_vector_store

from conftest import CREATED


def record(record_id, document_id, values, title="Title"):
    return EmbeddingRecord(
        id=record_id,
        values=values,
        metadata=ChunkMetadata(document_id=document_id, title=title, created_at=CREATED),
    )


class TestInMemoryVectorStore:
    async def test_query_orders_by_cosine(self):
        store = InMemoryVectorStore()
        await store.upsert(
            [
                record("a_chunk_0", "a", [1.0, 0.0]),
                record("b_chunk_0", "b", [0.7, 0.7]),
                record("c_chunk_0", "c", [0.0, 1.0]),
            ]
        )

        matches = await store.query(EmbeddingVector([1.0, 0.1]), top_k=2)

        assert [m.id for m in matches] == ["a_chunk_0", "b_chunk_0"]
        assert matches[0].values == [1.0, 0.0]
        assert matches[0].metadata.document_id == "a"

    async def test_skips_other_dimensions(self):
        store = InMemoryVectorStore()
        await store.upsert([record("a_chunk_0", "a", [1.0, 0.0, 0.0])])
        assert await store.query(EmbeddingVector([1.0, 0.0]), top_k=5) == []

    async def test_upsert_replaces_by_id(self):
        store = InMemoryVectorStore()
        await store.upsert([record("a_chunk_0", "a", [1.0, 0.0])])
        await store.upsert([record("a_chunk_0", "a", [0.0, 1.0])])
        assert len(store) == 1
        matches = await store.query(EmbeddingVector([0.0, 1.0]), top_k=1)
        assert matches[0].score == pytest.approx(1.0)

    async def test_delete_document(self):
        store = InMemoryVectorStore()
        await store.upsert(
            [
                record("a_chunk_0", "a", [1.0, 0.0]),
                record("a_chunk_1", "a", [0.9, 0.1]),
                record("b_chunk_0", "b", [0.0, 1.0]),
            ]
        )

        assert await store.delete_document("a") == 2
        assert len(store) == 1
        assert await store.delete_document("missing") == 0

    async def test_zero_top_k(self):
        store = InMemoryVectorStore()
        await store.upsert([record("a_chunk_0", "a", [1.0, 0.0])])
        assert await store.query(EmbeddingVector([1.0, 0.0]), top_k=0) == []


class TestWeaviateVectorStore:
    async def test_upsert_uses_batch(self):
        client = MagicMock()
        store = WeaviateVectorStore(client=client)

        stored = await store.upsert([record("a_chunk_0", "a", [1.0, 0.0]), record("a_chunk_1", "a", [0.0, 1.0])])

        assert stored == 2
        batch = client.batch.__enter__.return_value
        assert batch.add_data_object.call_count == 2
        kwargs = batch.add_data_object.call_args_list[0].kwargs
        assert kwargs["class_name"] == "NoteChunk"
        assert kwargs["uuid"] == WeaviateVectorStore.object_uuid("a_chunk_0")
        assert kwargs["data_object"]["document_id"] == "a"
        assert kwargs["data_object"]["created_at"] == "2026-01-10T12:00:00Z"

    async def test_query_parses_response(self):
        client = MagicMock()
        chain = client.query.get.return_value.with_near_vector.return_value.with_limit.return_value
        chain.with_additional.return_value.do.return_value = {
            "data": {
                "Get": {
                    "NoteChunk": [
                        {
                            "chunk_id": "a_chunk_0",
                            "document_id": "a",
                            "title": "Knots",
                            "content_chunk": "figure eight",
                            "source_type": "video",
                            "created_at": "2026-01-10T12:00:00Z",
                            "chunk_index": 0,
                            "total_chunks": 1,
                            "_additional": {"certainty": 0.91, "vector": [1.0, 0.0]},
                        }
                    ]
                }
            }
        }
        store = WeaviateVectorStore(client=client)

        matches = await store.query(EmbeddingVector([1.0, 0.0]), top_k=3)

        assert len(matches) == 1
        assert matches[0].id == "a_chunk_0"
        assert matches[0].score == pytest.approx(0.91)
        assert matches[0].values == [1.0, 0.0]
        assert matches[0].metadata.source_type == "video"
        assert matches[0].metadata.created_at == CREATED
        client.query.get.return_value.with_near_vector.return_value.with_limit.assert_called_once_with(3)

    async def test_query_errors_raise(self):
        client = MagicMock()
        chain = client.query.get.return_value.with_near_vector.return_value.with_limit.return_value
        chain.with_additional.return_value.do.return_value = {"errors": [{"message": "no class"}]}

        with pytest.raises(VectorBackendError):
            await WeaviateVectorStore(client=client).query(EmbeddingVector([1.0, 0.0]), top_k=3)

    async def test_client_failure_raises(self):
        client = MagicMock()
        client.query.get.side_effect = ConnectionError("down")

        with pytest.raises(VectorBackendError):
            await WeaviateVectorStore(client=client).query(EmbeddingVector([1.0, 0.0]), top_k=3)

    async def test_delete_document(self):
        client = MagicMock()
        client.batch.delete_objects.return_value = {"results": {"successful": 3}}

        removed = await WeaviateVectorStore(client=client).delete_document("a")

        assert removed == 3
        where = client.batch.delete_objects.call_args.kwargs["where"]
        assert where["valueText"] == "a"

    async def test_empty_upsert(self):
        client = MagicMock()
        assert await WeaviateVectorStore(client=client).upsert([]) == 0
        client.batch.__enter__.assert_not_called()


class TestCreateVectorStore:
    def test_memory_is_default(self):
        assert isinstance(create_vector_store(), InMemoryVectorStore)

    def test_weaviate_backend(self, monkeypatch):
        client_cls = MagicMock(name="Client")
        monkeypatch.setattr("weaviate.Client", client_cls)

        store = create_vector_store(
            VectorConfig(backend="Weaviate", weaviate_url="http://weaviate:8080", class_name="Notes")
        )

        assert isinstance(store, WeaviateVectorStore)
        assert store.class_name == "Notes"
        assert store.client is client_cls.return_value
        client_cls.assert_called_once_with("http://weaviate:8080")

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_vector_store(VectorConfig(backend="pinecone"))
        assert "memory, weaviate" in exc_info.value.suggestions[0]
