"""
notemind models.
Exports the main models for use in other modules.
"""

# Base
from .base import NotemindBaseModel, FrozenModel, clamp_unit

# Documents
from notemind.models.document import SourceType, Document

# Vector index
from notemind.models.chunk import ChunkMetadata, EmbeddingRecord, VectorMatch, chunk_id

# Search
from notemind.models.search import (
    SearchStrategy,
    ResultMetadata,
    KeywordMetadata,
    SemanticMetadata,
    HybridMetadata,
    SearchResult,
    SearchMetrics,
    SearchResponse,
    AnswerResponse,
    sort_results,
)

# Semantic types
from notemind.models.semantic_types import (
    QueryIntent,
    ContentTypeHint,
    Specificity,
    Timeframe,
    QueryAnalysis,
    IntentMatch,
    ValidationResult,
    VideoValidation,
    ValidationReport,
)

__all__ = [
    # Base
    "NotemindBaseModel",
    "FrozenModel",
    "clamp_unit",
    # Documents
    "SourceType",
    "Document",
    # Vector index
    "ChunkMetadata",
    "EmbeddingRecord",
    "VectorMatch",
    "chunk_id",
    # Search
    "SearchStrategy",
    "ResultMetadata",
    "KeywordMetadata",
    "SemanticMetadata",
    "HybridMetadata",
    "SearchResult",
    "SearchMetrics",
    "SearchResponse",
    "AnswerResponse",
    "sort_results",
    # Semantic types
    "QueryIntent",
    "ContentTypeHint",
    "Specificity",
    "Timeframe",
    "QueryAnalysis",
    "IntentMatch",
    "ValidationResult",
    "VideoValidation",
    "ValidationReport",
]
