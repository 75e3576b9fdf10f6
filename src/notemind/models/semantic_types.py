"""
Types for the Semantic module.

Defines the structures produced by query analysis and relevance validation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class QueryIntent(str, Enum):
    SPECIFIC_PERSON = "specific_person"
    TOPIC = "topic"
    GENERAL = "general"


class ContentTypeHint(str, Enum):
    VIDEO = "video"
    TEXT = "text"
    ANY = "any"


class Specificity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Timeframe(str, Enum):
    RECENT = "recent"
    SPECIFIC = "specific"
    ANY = "any"


@dataclass
class QueryAnalysis:
    """What the query asks for."""

    entities: List[str]
    intent: QueryIntent
    content_type: ContentTypeHint
    specificity: Specificity = Specificity.LOW
    timeframe: Timeframe = Timeframe.ANY
    topics: List[str] = field(default_factory=list)
    confidence: float = 0.5


@dataclass
class IntentMatch:
    """How well a document matches a QueryAnalysis."""

    matches: bool
    score: float
    reasons: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    """
    Outcome of validating one candidate against a query.

    ``confidence`` is the minimum of the three partial confidences.
    """

    is_valid: bool
    confidence: float
    reason: str
    matched_entities: List[str] = field(default_factory=list)
    entity_overlap: float = 1.0
    channel_confidence: float = 1.0
    content_type_confidence: float = 1.0


@dataclass
class VideoValidation:
    """Outcome of the reaction/compilation check on a video title."""

    is_valid: bool
    confidence: float
    issues: List[str] = field(default_factory=list)


@dataclass
class ValidationReport:
    """
    Outcome of filtering a result list.

    ``rejected`` holds ``(document_id, reason)`` pairs in input order.
    """

    results: list
    rejected: List[Tuple[str, str]] = field(default_factory=list)
    total_candidates: int = 0
    strict_mode: bool = False

    @property
    def rejection_rate(self) -> float:
        if not self.total_candidates:
            return 0.0
        return len(self.rejected) / self.total_candidates

    def reason_for(self, document_id: str) -> Optional[str]:
        for rejected_id, reason in self.rejected:
            if rejected_id == document_id:
                return reason
        return None
