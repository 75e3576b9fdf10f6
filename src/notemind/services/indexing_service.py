"""
Indexing Service - Embedding Pipeline.

Keeps the vector index in step with the document collection and drops
cached search results that mention re-indexed documents.
"""

import asyncio
from typing import Dict, Iterable, Optional

from notemind.core.exceptions import NotemindError
from notemind.core.logging import logger
from notemind.core.tracing import MetricsCollector
from notemind.models.document import Document
from notemind.rag.retrieval.cache import ResultCache
from notemind.rag.retrieval.semantic_search import SemanticSearchStrategy


class IndexingService:
    """
    Orchestrates document indexing.

    PIPELINE:
    1. Chunking → paragraph, then sentence boundaries
    2. Embeddings → one vector per chunk
    3. Vector store → previous vectors replaced
    4. Result cache → entries containing the document invalidated
    """

    def __init__(
        self,
        semantic: SemanticSearchStrategy,
        cache: Optional[ResultCache] = None,
        concurrent_workers: int = 4,
    ):
        self.semantic = semantic
        self.cache = cache
        self.concurrent_workers = max(1, concurrent_workers)
        self.metrics = MetricsCollector(namespace="indexing")

        # Lock to prevent concurrent indexing runs
        self._indexing_lock: asyncio.Lock = asyncio.Lock()

    async def _index_one(self, document: Document, semaphore: asyncio.Semaphore) -> int:
        async with semaphore:
            try:
                return await self.semantic.upsert(document)
            except NotemindError as e:
                logger.error("Failed to index document", document_id=document.id, error=str(e))
                return 0

    async def index_documents(self, documents: Iterable[Document]) -> Dict[str, int]:
        """
        (Re)index documents.

        A document that produced no vectors counts as failed and keeps its
        previous vectors.

        Returns:
            {"indexed": n, "failed": n, "vectors": n}
        """
        documents = list(documents)
        async with self._indexing_lock:
            semaphore = asyncio.Semaphore(self.concurrent_workers)
            stored = await asyncio.gather(*(self._index_one(doc, semaphore) for doc in documents))

        indexed = failed = vectors = 0
        for document, count in zip(documents, stored):
            if count > 0:
                indexed += 1
                vectors += count
                if self.cache is not None:
                    self.cache.invalidate_document(document.id)
            else:
                failed += 1

        self.metrics.increment("documents_indexed", indexed)
        self.metrics.increment("documents_failed", failed)
        self.metrics.increment("vectors_stored", vectors)
        logger.info("Indexing completed", indexed=indexed, failed=failed, vectors=vectors)
        return {"indexed": indexed, "failed": failed, "vectors": vectors}

    async def remove_document(self, document_id: str) -> int:
        """Remove a document from the index and from cached results."""
        removed = await self.semantic.delete(document_id)
        if self.cache is not None:
            self.cache.invalidate_document(document_id)
        self.metrics.increment("documents_removed")
        return removed
