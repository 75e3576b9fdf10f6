"""
Vector similarity search and indexing.

Embeds the query, asks the vector store for candidates, rescores them by
cosine similarity and collapses chunks to their parent documents.
"""

import asyncio
from typing import Awaitable, Dict, Iterable, List, Optional, TypeVar

from notemind.core.config import SearchConfig
from notemind.core.exceptions import EmbeddingError, NotemindError, VectorBackendError
from notemind.core.logging import logger
from notemind.core.tracing import tracer
from notemind.embeddings.types import EmbeddingProvider, EmbeddingVector, cosine_similarity
from notemind.models.chunk import EmbeddingRecord, VectorMatch
from notemind.models.document import Document
from notemind.models.search import SearchResult, SemanticMetadata
from notemind.rag.chunking import TextChunker
from notemind.rag.retrieval.text_utils import extract_key_terms, generate_snippet
from notemind.rag.vector.base import VectorStore

T = TypeVar("T")


class SemanticSearchStrategy:
    """
    Semantic search over chunk embeddings.

    - Queries ``top_k * 2`` candidates
    - Keeps ``similarity >= similarity_threshold``
    - Best chunk per document wins
    - Returns at most ``top_k`` documents

    ``search`` never raises; ``retrieve`` raises so the hybrid merger can
    tell a failure from an empty answer.
    """

    name = "semantic"

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        config: Optional[SearchConfig] = None,
        chunker: Optional[TextChunker] = None,
        embed_timeout: Optional[float] = None,
    ):
        self.embedder = embedder
        self.store = store
        self.config = config or SearchConfig()
        self.chunker = chunker or TextChunker()
        self.embed_timeout = embed_timeout or self.config.timeout_seconds

    async def _embed(self, text: str) -> EmbeddingVector:
        try:
            return await asyncio.wait_for(self.embedder.embed(text), timeout=self.embed_timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                "Embedding timed out",
                context={"service": "embeddings", "timeout": self.embed_timeout},
                cause=e,
            )

    async def _store_call(self, operation: str, call: Awaitable[T]) -> T:
        """Bounds one vector store call by ``vector_timeout_seconds``."""
        timeout = self.config.vector_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise VectorBackendError(
                f"Vector {operation} timed out",
                context={"service": "vector", "operation": operation, "timeout": timeout},
                cause=e,
            )

    async def _query(self, vector: EmbeddingVector, limit: int) -> List[VectorMatch]:
        return await self._store_call("query", self.store.query(vector, limit))

    async def retrieve(self, corpus: Iterable[Document], query: str) -> List[SearchResult]:
        """
        Semantic search that propagates failures.

        Raises:
            EmbeddingError: If the query cannot be embedded
            VectorBackendError: If the vector store fails
        """
        if not query or not query.strip():
            return []

        with tracer.span("semantic_search", {"top_k": self.config.top_k}):
            query_vector = await self._embed(query)
            matches = await self._query(query_vector, self.config.top_k * 2)

        documents = {doc.id: doc for doc in corpus}

        best: Dict[str, tuple] = {}
        for match in matches:
            if match.values:
                similarity = cosine_similarity(query_vector, match.values)
            else:
                similarity = match.score
            if similarity < self.config.similarity_threshold:
                continue
            document_id = match.metadata.document_id
            current = best.get(document_id)
            if current is None or similarity > current[0]:
                best[document_id] = (similarity, match)

        ranked = sorted(best.items(), key=lambda item: (-item[1][0], item[0]))[: self.config.top_k]

        results = [
            self._to_result(document_id, similarity, match, documents.get(document_id), query)
            for document_id, (similarity, match) in ranked
        ]
        logger.debug(
            "Semantic search completed",
            query=query[:50],
            candidates=len(matches),
            results=len(results),
        )
        return results

    async def search(self, corpus: Iterable[Document], query: str) -> List[SearchResult]:
        """Semantic search that returns [] on any embedding or backend failure."""
        try:
            return await self.retrieve(corpus, query)
        except Exception as e:
            logger.error("Semantic search failed", error=str(e), error_type=type(e).__name__)
            return []

    def _to_result(
        self,
        document_id: str,
        similarity: float,
        match: VectorMatch,
        document: Optional[Document],
        query: str,
    ) -> SearchResult:
        chunk = match.metadata
        content = document.text if document is not None else chunk.content_chunk

        if document is not None:
            base = SearchResult.base_metadata(document)
        else:
            base = {
                "created_at": chunk.created_at,
                "is_transcription": chunk.source_type == "video",
                "content_length": len(content),
            }

        return SearchResult(
            id=document_id,
            title=document.title if document is not None else chunk.title,
            content=content,
            relevance=similarity,
            snippet=generate_snippet(chunk.content_chunk or content, query),
            source_type=document.source_type if document is not None else chunk.source_type,
            metadata=SemanticMetadata(
                **base,
                similarity=max(-1.0, min(1.0, similarity)),
                key_terms=extract_key_terms(chunk.content_chunk or content, query),
            ),
        )

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def upsert(self, document: Document) -> int:
        """
        (Re)indexes a document.

        Each chunk is embedded separately; a failing chunk is skipped.
        Previous vectors are replaced only when at least one chunk embedded.

        Returns:
            Number of vectors stored
        """
        records: List[EmbeddingRecord] = []
        for chunk in self.chunker.chunk_document(document):
            try:
                vector = await self._embed(chunk.text)
            except NotemindError as e:
                logger.warning(
                    "Skipping chunk that failed to embed",
                    document_id=document.id,
                    chunk_id=chunk.id,
                    error=str(e),
                )
                continue
            records.append(EmbeddingRecord(id=chunk.id, values=vector.list, metadata=chunk.metadata))

        if not records:
            logger.warning("No chunk embedded, keeping previous vectors", document_id=document.id)
            return 0

        await self._store_call("delete", self.store.delete_document(document.id))
        stored = await self._store_call("upsert", self.store.upsert(records))
        logger.info("Document indexed", document_id=document.id, vectors=stored)
        return stored

    async def delete(self, document_id: str) -> int:
        """Removes every vector of a document."""
        removed = await self._store_call("delete", self.store.delete_document(document_id))
        logger.info("Document removed from index", document_id=document_id, vectors=removed)
        return removed
