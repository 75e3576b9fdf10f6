"""
Query intent analyzer.

Determines who or what a query is about, which kind of content it wants
and how specific it is. Pure rules, no model calls.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Union

from notemind.core.logging import logger
from notemind.core.tracing import MetricsCollector
from notemind.core.utils.datetime_utils import Clock, age_in_days, system_clock
from notemind.models.document import Document
from notemind.models.search import SearchResult
from notemind.models.semantic_types import (
    ContentTypeHint,
    IntentMatch,
    QueryAnalysis,
    QueryIntent,
    Specificity,
    Timeframe,
)
from notemind.semantic.utils import (
    KNOWN_CREATORS,
    TOPICS,
    capitalized_words,
    dedupe,
    drop_subsumed,
    find_creators,
    mentions_any,
    quoted_phrases,
    significant_terms,
)

INTENT_VIDEO_WORDS = ["video", "watch", "stream", "episode", "clip", "reaction", "youtube"]
INTENT_TEXT_WORDS = ["note", "article", "text", "document", "write", "blog"]
RECENT_WORDS = ["recent", "latest", "new", "today", "yesterday", "this week"]
MONTHS = [
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
]
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")

Candidate = Union[Document, SearchResult]


class QueryIntentAnalyzer:
    """Analyzes what a search query is asking for."""

    def __init__(
        self,
        creators: Optional[Dict[str, List[str]]] = None,
        topics: Optional[List[str]] = None,
        clock: Optional[Clock] = None,
    ):
        self.creators = creators if creators is not None else KNOWN_CREATORS
        self.topics = topics if topics is not None else TOPICS
        self.clock = clock or system_clock
        self.metrics = MetricsCollector(namespace="semantic.query_analyzer")

    def analyze(self, query: str) -> QueryAnalysis:
        """
        Analyze a query.

        Args:
            query: Raw user query (original case matters for proper nouns)

        Returns:
            QueryAnalysis with entities, intent, content type, specificity,
            timeframe and a confidence in [0, 1]
        """
        query = query or ""
        query_lower = query.lower().strip()

        creators = find_creators(query_lower, self.creators)
        topics = [t for t in self.topics if t in query_lower]

        entities = list(creators) + topics
        entities.extend(quoted_phrases(query))
        entities.extend(capitalized_words(query))
        entities.extend(significant_terms(query_lower))
        entities = dedupe(drop_subsumed(entities, creators))

        if creators:
            intent = QueryIntent.SPECIFIC_PERSON
        elif topics or entities:
            intent = QueryIntent.TOPIC
        else:
            intent = QueryIntent.GENERAL

        content_type = self._content_type(query_lower)
        specificity = self._specificity(query_lower, entities)
        timeframe = self._timeframe(query_lower)
        confidence = self._confidence(query_lower, entities, specificity)

        self.metrics.increment(f"intent.{intent.value}")
        logger.debug(
            "Query analyzed",
            intent=intent.value,
            entities=entities,
            content_type=content_type.value,
            specificity=specificity.value,
        )

        return QueryAnalysis(
            entities=entities,
            intent=intent,
            content_type=content_type,
            specificity=specificity,
            timeframe=timeframe,
            topics=topics,
            confidence=confidence,
        )

    def _content_type(self, query_lower: str) -> ContentTypeHint:
        wants_video = mentions_any(query_lower, INTENT_VIDEO_WORDS)
        wants_text = mentions_any(query_lower, INTENT_TEXT_WORDS)
        if wants_video and not wants_text:
            return ContentTypeHint.VIDEO
        if wants_text and not wants_video:
            return ContentTypeHint.TEXT
        return ContentTypeHint.ANY

    def _specificity(self, query_lower: str, entities: List[str]) -> Specificity:
        if len(entities) >= 2 or len(query_lower) > 50 or '"' in query_lower:
            return Specificity.HIGH
        if len(entities) == 1 or len(query_lower) > 20:
            return Specificity.MEDIUM
        return Specificity.LOW

    def _timeframe(self, query_lower: str) -> Timeframe:
        if mentions_any(query_lower, RECENT_WORDS):
            return Timeframe.RECENT
        if _YEAR_RE.search(query_lower) or mentions_any(query_lower, MONTHS):
            return Timeframe.SPECIFIC
        return Timeframe.ANY

    def _confidence(self, query_lower: str, entities: List[str], specificity: Specificity) -> float:
        confidence = 0.5 + len(entities) * 0.2
        if specificity == Specificity.HIGH:
            confidence += 0.3
        elif specificity == Specificity.MEDIUM:
            confidence += 0.1
        if "?" in query_lower or len(query_lower.split()) > 3:
            confidence += 0.1
        return min(confidence, 1.0)

    def validate_against_intent(self, analysis: QueryAnalysis, candidate: Candidate) -> IntentMatch:
        """
        Score how well a document matches an analyzed query.

        +0.4 per entity found in the title or channel, +0.2 / -0.3 for a
        content-type match / mismatch, +0.2 / -0.1 for recent / stale
        content when the query asks for recent material. High-specificity
        queries need at least one entity match.
        """
        if isinstance(candidate, Document):
            title = candidate.title
            channel = candidate.channel_name
            is_video = candidate.is_transcription
            created_at = candidate.created_at
        else:
            title = candidate.title
            channel = candidate.metadata.channel_name
            is_video = candidate.metadata.is_transcription
            created_at = candidate.metadata.created_at

        title_lower = (title or "").lower()
        channel_lower = (channel or "").lower()
        reasons: List[str] = []
        score = 0.0

        entity_matches = 0
        for entity in analysis.entities:
            if entity in title_lower or (channel_lower and entity in channel_lower):
                entity_matches += 1
                score += 0.4
                reasons.append(f"Entity match: {entity}")

        if analysis.specificity == Specificity.HIGH and entity_matches == 0:
            reasons.append("No entity matches for high-specificity query")
            return IntentMatch(matches=False, score=0.0, reasons=reasons)

        if analysis.content_type != ContentTypeHint.ANY:
            wanted_video = analysis.content_type == ContentTypeHint.VIDEO
            if wanted_video == is_video:
                score += 0.2
                reasons.append(f"Content type match: {analysis.content_type.value}")
            else:
                score -= 0.3
                reasons.append(f"Content type mismatch: expected {analysis.content_type.value}")

        if analysis.timeframe == Timeframe.RECENT and isinstance(created_at, datetime):
            days = age_in_days(created_at, now=self.clock.utc_now())
            if days <= 7:
                score += 0.2
                reasons.append("Recent content matches timeframe preference")
            elif days > 30:
                score -= 0.1
                reasons.append("Content not recent as requested")

        matches = score >= 0.3
        return IntentMatch(matches=matches, score=max(0.0, min(1.0, score)), reasons=reasons)
