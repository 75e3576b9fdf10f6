"""
Search result models.

Result metadata is a tagged variant selected by ``search_method``:
KeywordMetadata, SemanticMetadata and HybridMetadata share ResultMetadata.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, field_validator

from notemind.models.base import FrozenModel, NotemindBaseModel, clamp_unit
from notemind.models.document import Document, SourceType


class SearchStrategy(str, Enum):
    """Retrieval strategies a caller can request."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class ResultMetadata(FrozenModel):
    """Fields shared by every metadata variant."""

    created_at: Optional[datetime] = None
    source_url: Optional[str] = None
    is_transcription: bool = False
    channel_name: Optional[str] = None
    video_id: Optional[str] = None
    content_length: int = Field(0, ge=0)
    key_terms: List[str] = Field(default_factory=list)
    topic_relevance: float = Field(0.0, ge=0.0, le=1.0)

    # Set by the relevance validator
    validation_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    validation_reason: Optional[str] = None


class KeywordMetadata(ResultMetadata):
    search_method: Literal["keyword"] = "keyword"


class SemanticMetadata(ResultMetadata):
    search_method: Literal["semantic"] = "semantic"
    similarity: float = Field(0.0, ge=-1.0, le=1.0)


class HybridMetadata(ResultMetadata):
    search_method: Literal["hybrid"] = "hybrid"
    similarity: float = Field(0.0, ge=-1.0, le=1.0)
    keyword_relevance: float = Field(0.0, ge=0.0, le=1.0)


AnyResultMetadata = Annotated[
    Union[KeywordMetadata, SemanticMetadata, HybridMetadata],
    Field(discriminator="search_method"),
]


class SearchResult(FrozenModel):
    """
    One ranked document returned by a strategy.

    ``relevance`` is clamped to [0, 1] on construction; use
    ``with_relevance`` to derive a rescored copy.
    """

    id: str
    title: str = ""
    content: str = ""
    relevance: float = 0.0
    snippet: str = ""
    source_type: SourceType = SourceType.NOTE
    metadata: AnyResultMetadata = Field(default_factory=KeywordMetadata)

    @field_validator("relevance", mode="before")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp_unit(v)

    @property
    def search_method(self) -> str:
        return self.metadata.search_method

    def with_relevance(self, relevance: float) -> "SearchResult":
        return self.model_copy(update={"relevance": clamp_unit(relevance)})

    def with_metadata(self, **changes) -> "SearchResult":
        return self.model_copy(update={"metadata": self.metadata.model_copy(update=changes)})

    @classmethod
    def base_metadata(cls, document: Document) -> dict:
        """Metadata fields derived from the source document."""
        return {
            "created_at": document.created_at,
            "source_url": document.source_url,
            "is_transcription": document.is_transcription,
            "channel_name": document.channel_name,
            "video_id": document.video_id,
            "content_length": len(document.text),
        }


def sort_results(results: List[SearchResult]) -> List[SearchResult]:
    """Relevance descending, ties by id ascending."""
    return sorted(results, key=lambda r: (-r.relevance, r.id))


class SearchMetrics(NotemindBaseModel):
    """Timing and outcome of one search call."""

    search_time_ms: float = Field(0.0, ge=0.0)
    result_count: int = Field(0, ge=0)
    strategy: SearchStrategy = SearchStrategy.HYBRID
    cache_hit: bool = False
    quality_score: float = Field(0.0, ge=0.0, le=1.0)


class SearchResponse(NotemindBaseModel):
    """What ``SearchOrchestrator.search`` returns."""

    results: List[SearchResult] = Field(default_factory=list)
    metrics: SearchMetrics = Field(default_factory=SearchMetrics)
    no_relevant_content: bool = False
    context: str = ""
    state_trace: List[str] = Field(default_factory=list)


class AnswerResponse(NotemindBaseModel):
    """What ``SearchOrchestrator.answer`` returns."""

    answer: str
    sources: List[SearchResult] = Field(default_factory=list)
    context: str = ""
    metrics: SearchMetrics = Field(default_factory=SearchMetrics)
    used_llm: bool = False
