"""
Vector store factory.

Builds the store named by ``vector.backend``.
"""

from typing import Optional

from notemind.core.config import VectorConfig
from notemind.core.exceptions import ConfigurationError
from notemind.core.logging import logger
from notemind.rag.vector.base import VectorStore
from notemind.rag.vector.memory import InMemoryVectorStore
from notemind.rag.vector.weaviate_store import WeaviateVectorStore

BACKENDS = ("memory", "weaviate")


def create_vector_store(config: Optional[VectorConfig] = None) -> VectorStore:
    """
    Create the configured vector store.

    Raises:
        ConfigurationError: Unknown backend
        VectorBackendError: The Weaviate client could not be created
    """
    config = config or VectorConfig()
    backend = config.backend.strip().lower()

    if backend == "memory":
        store: VectorStore = InMemoryVectorStore()
    elif backend == "weaviate":
        store = WeaviateVectorStore(url=config.weaviate_url, class_name=config.class_name)
    else:
        error = ConfigurationError(
            f"Unknown vector backend: {config.backend}",
            context={"backend": config.backend},
        )
        error.add_suggestion(f"Set vector.backend to one of: {', '.join(BACKENDS)}")
        raise error

    logger.info("Vector store created", backend=backend)
    return store
