"""
Relevance validator.

Guards against results that score well lexically or by vector similarity
but are about the wrong person or the wrong kind of content, such as a
reaction video from an unrelated channel matching on generic words.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from notemind.core.config import ValidationConfig
from notemind.core.logging import logger
from notemind.core.tracing import MetricsCollector
from notemind.models.document import Document
from notemind.models.search import SearchResult, sort_results
from notemind.models.semantic_types import ValidationReport, ValidationResult, VideoValidation
from notemind.semantic.utils import (
    KNOWN_CREATORS,
    NOTE_WORDS,
    VIDEO_WORDS,
    collapse,
    creator_title_patterns,
    dedupe,
    extract_query_entities,
    mentions_any,
)

REACTION_PATTERNS = [
    re.compile(r"reacts?\s+to", re.IGNORECASE),
    re.compile(r"reaction", re.IGNORECASE),
    re.compile(r"responds?\s+to", re.IGNORECASE),
    re.compile(r"watching", re.IGNORECASE),
]
COMPILATION_PATTERNS = [
    re.compile(r"compilation", re.IGNORECASE),
    re.compile(r"highlights", re.IGNORECASE),
    re.compile(r"best\s+of", re.IGNORECASE),
    re.compile(r"moments", re.IGNORECASE),
    re.compile(r"clips", re.IGNORECASE),
]

REACTION_PENALTY = 0.3
COMPILATION_PENALTY = 0.5
CREATOR_CONFLICT_CONFIDENCE = 0.1
NO_CONFLICT_CONFIDENCE = 0.7
CONTENT_TYPE_MISMATCH_CONFIDENCE = 0.3
LENIENT_FLOOR = 0.5

Candidate = Union[Document, SearchResult]


@dataclass
class _CandidateView:
    title: str
    is_video: bool
    channel_name: Optional[str]


def _view(candidate: Candidate) -> _CandidateView:
    if isinstance(candidate, Document):
        return _CandidateView(candidate.title, candidate.is_transcription, candidate.channel_name)
    meta = candidate.metadata
    return _CandidateView(candidate.title, meta.is_transcription, meta.channel_name)


class RelevanceValidator:
    """
    Validates candidates against the entities and content type a query names.

    ``validate`` checks one candidate; ``filter_results`` applies the
    lenient or strict policy to a ranked list and never fails the query.
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        creators: Optional[Dict[str, List[str]]] = None,
    ):
        self.config = config or ValidationConfig()
        self.creators = creators if creators is not None else KNOWN_CREATORS
        self._title_patterns = creator_title_patterns(self.creators)
        self.metrics = MetricsCollector(namespace="semantic.validator")

    # ------------------------------------------------------------------
    # Entity extraction
    # ------------------------------------------------------------------

    def query_entities(self, query: str) -> List[str]:
        return extract_query_entities(query, self.creators)

    def candidate_entities(self, candidate: Candidate) -> List[str]:
        view = _view(candidate)
        entities = []
        if view.is_video and view.channel_name:
            entities.append(view.channel_name.lower())

        title = view.title or ""
        entities.extend(w.lower() for w in title.split() if len(w) > 3)

        for name, pattern in self._title_patterns.items():
            if pattern.search(title):
                entities.append(name)
        return dedupe(entities)

    @staticmethod
    def entity_overlap(query_entities: List[str], candidate_entities: List[str]) -> tuple:
        """
        Fraction of query entities found among candidate entities.

        Exact matches always count; substring matches count when the
        contained entity is longer than five characters.
        """
        if not query_entities:
            return 0.0, []

        matched = []
        for q in query_entities:
            for c in candidate_entities:
                if c == q or (len(q) > 5 and q in c) or (len(c) > 5 and c in q):
                    matched.append(q)
                    break
        return len(matched) / len(query_entities), matched

    # ------------------------------------------------------------------
    # Partial checks
    # ------------------------------------------------------------------

    def _channel_names(self, entity: str) -> List[str]:
        """The collapsed forms an entity may take in a channel name."""
        forms = [collapse(entity)]
        forms.extend(collapse(a) for a in self.creators.get(entity, []))
        return [f for f in forms if f]

    def validate_channel(self, query_entities: List[str], channel_name: str) -> ValidationResult:
        channel_lower = channel_name.lower()
        channel_collapsed = collapse(channel_name)

        for entity in query_entities:
            if entity in channel_lower or (channel_lower and channel_lower in entity):
                return ValidationResult(
                    is_valid=True,
                    confidence=1.0,
                    reason=f"Channel match found: {entity} <-> {channel_name}",
                )
            if any(form in channel_collapsed for form in self._channel_names(entity)):
                return ValidationResult(
                    is_valid=True,
                    confidence=1.0,
                    reason=f"Channel alias match: {entity} <-> {channel_name}",
                )

        mentioned = [e for e in query_entities if e in self.creators]
        if mentioned:
            return ValidationResult(
                is_valid=False,
                confidence=CREATOR_CONFLICT_CONFIDENCE,
                reason=(
                    f"Query mentions specific creator ({', '.join(mentioned)}) "
                    f"but channel is {channel_name}"
                ),
            )

        return ValidationResult(
            is_valid=True,
            confidence=NO_CONFLICT_CONFIDENCE,
            reason="No specific creator conflict detected",
        )

    @staticmethod
    def validate_content_type(query_lower: str, is_video: bool) -> ValidationResult:
        if mentions_any(query_lower, VIDEO_WORDS) and not is_video:
            return ValidationResult(
                is_valid=False,
                confidence=CONTENT_TYPE_MISMATCH_CONFIDENCE,
                reason="Query requests video content but source is text note",
            )
        if mentions_any(query_lower, NOTE_WORDS) and is_video:
            return ValidationResult(
                is_valid=False,
                confidence=CONTENT_TYPE_MISMATCH_CONFIDENCE,
                reason="Query requests text content but source is video transcript",
            )
        return ValidationResult(
            is_valid=True, confidence=1.0, reason="Content type matches query intent"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, candidate: Candidate, query: str, strict_mode: bool = True) -> ValidationResult:
        """
        Validate one candidate against a query.

        Args:
            candidate: Document or SearchResult
            query: Original-case query
            strict_mode: Stop at the first failing check

        Returns:
            ValidationResult whose confidence is the minimum of entity
            overlap, channel confidence and content-type confidence
        """
        view = _view(candidate)
        query_lower = (query or "").lower().strip()
        min_overlap = self.config.min_entity_overlap

        q_entities = self.query_entities(query)
        overlap, matched = self.entity_overlap(q_entities, self.candidate_entities(candidate))
        if not q_entities:
            overlap = 1.0

        if strict_mode and overlap < min_overlap:
            return ValidationResult(
                is_valid=False,
                confidence=overlap,
                reason=f"Low entity overlap: {overlap:.3f} < {min_overlap}",
                matched_entities=matched,
                entity_overlap=overlap,
            )

        channel = ValidationResult(True, 1.0, "No channel validation needed")
        if view.is_video and view.channel_name:
            channel = self.validate_channel(q_entities, view.channel_name)
            if strict_mode and not channel.is_valid:
                return ValidationResult(
                    is_valid=False,
                    confidence=channel.confidence,
                    reason=f"Channel mismatch: {channel.reason}",
                    matched_entities=matched,
                    entity_overlap=overlap,
                    channel_confidence=channel.confidence,
                )

        content_type = self.validate_content_type(query_lower, view.is_video)
        if strict_mode and not content_type.is_valid:
            return ValidationResult(
                is_valid=False,
                confidence=content_type.confidence,
                reason=f"Content type mismatch: {content_type.reason}",
                matched_entities=matched,
                entity_overlap=overlap,
                channel_confidence=channel.confidence,
                content_type_confidence=content_type.confidence,
            )

        confidence = min(overlap, channel.confidence, content_type.confidence)
        is_valid = confidence >= self.config.strict_match_threshold
        return ValidationResult(
            is_valid=is_valid,
            confidence=confidence,
            reason="Valid match" if is_valid else "Below confidence threshold",
            matched_entities=matched,
            entity_overlap=overlap,
            channel_confidence=channel.confidence,
            content_type_confidence=content_type.confidence,
        )

    def validate_video_content(
        self, title: str, channel_name: Optional[str], query: str
    ) -> VideoValidation:
        """
        Penalize reaction and compilation titles the query did not ask for.

        Reaction titles are kept at full weight when the query names the
        channel; compilations when the query says "compilation" or
        "highlights".
        """
        title = title or ""
        query_lower = (query or "").lower()
        issues: List[str] = []
        confidence = 1.0

        if any(p.search(title) for p in REACTION_PATTERNS):
            if not (channel_name and channel_name.lower() in query_lower):
                issues.append("Reaction video where reactor not mentioned in query")
                confidence *= REACTION_PENALTY

        if any(p.search(title) for p in COMPILATION_PATTERNS):
            if "compilation" not in query_lower and "highlights" not in query_lower:
                issues.append("Compilation video not specifically requested")
                confidence *= COMPILATION_PENALTY

        is_valid = not (confidence <= 0.5 and len(issues) >= 2)
        return VideoValidation(is_valid=is_valid, confidence=confidence, issues=issues)

    def filter_results(
        self,
        results: List[SearchResult],
        query: str,
        strict_mode: Optional[bool] = None,
    ) -> ValidationReport:
        """
        Apply validation to a ranked list.

        Strict mode drops every result whose validation fails. Lenient mode
        drops only creator conflicts and otherwise scales relevance by
        ``max(confidence, 0.5)``. Video results are further scaled by the
        reaction/compilation check and dropped when it fails.
        """
        strict = self.config.strict_mode if strict_mode is None else strict_mode
        kept: List[SearchResult] = []
        rejected = []

        for result in results:
            verdict = self.validate(result, query, strict_mode=strict)

            if strict and not verdict.is_valid:
                rejected.append((result.id, verdict.reason))
                continue
            if not strict and verdict.channel_confidence <= CREATOR_CONFLICT_CONFIDENCE:
                rejected.append((result.id, verdict.reason))
                continue

            relevance = result.relevance
            if not strict:
                relevance *= max(verdict.confidence, LENIENT_FLOOR)

            if result.metadata.is_transcription:
                video = self.validate_video_content(
                    result.title, result.metadata.channel_name, query
                )
                if not video.is_valid:
                    rejected.append((result.id, "; ".join(video.issues)))
                    continue
                relevance *= video.confidence

            annotated = result.with_relevance(relevance).with_metadata(
                validation_confidence=max(0.0, min(1.0, verdict.confidence)),
                validation_reason=verdict.reason,
            )
            kept.append(annotated)

        self.metrics.increment("validated", len(results))
        self.metrics.increment("rejected", len(rejected))
        if rejected:
            logger.info(
                "Validation rejected results",
                query=query[:50],
                rejected=len(rejected),
                total=len(results),
                strict=strict,
            )

        return ValidationReport(
            results=sort_results(kept),
            rejected=rejected,
            total_candidates=len(results),
            strict_mode=strict,
        )
