"""
Vector stores for semantic search.
"""

from notemind.rag.vector.base import VectorStore
from notemind.rag.vector.memory import InMemoryVectorStore
from notemind.rag.vector.weaviate_store import WeaviateVectorStore
from notemind.rag.vector.factory import create_vector_store

__all__ = [
    "VectorStore",
    "InMemoryVectorStore",
    "WeaviateVectorStore",
    "create_vector_store",
]
