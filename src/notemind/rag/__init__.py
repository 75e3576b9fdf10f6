"""
RAG (Retrieval-Augmented Generation) module for notemind.

Chunking, vector storage, keyword/semantic/hybrid retrieval and context
assembly for the question-answering layer.
"""

from notemind.rag.retrieval import (
    HybridMerger,
    KeywordSearchStrategy,
    SemanticSearchStrategy,
    ResultCache,
    ResultProcessor,
)
from notemind.rag.context import ContextBuilder

__all__ = [
    "HybridMerger",
    "KeywordSearchStrategy",
    "SemanticSearchStrategy",
    "ResultCache",
    "ResultProcessor",
    "ContextBuilder",
]
