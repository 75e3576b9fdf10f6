from datetime import timedelta

import pytest

from notemind.models.document import SourceType
from notemind.models.semantic_types import (
    ContentTypeHint,
    QueryIntent,
    Specificity,
    Timeframe,
)
from notemind.semantic import QueryIntentAnalyzer

from conftest import NOW, make_document


@pytest.fixture
def analyzer(clock):
    return QueryIntentAnalyzer(clock=clock)


class TestAnalyze:
    def test_creator_query(self, analyzer):
        analysis = analyzer.analyze("what did Joe Rogan say about knots")

        assert analysis.entities == ["joe rogan", "knots"]
        assert analysis.intent == QueryIntent.SPECIFIC_PERSON
        assert analysis.specificity == Specificity.HIGH
        assert analysis.content_type == ContentTypeHint.ANY
        assert analysis.confidence == 1.0

    def test_alias_maps_to_canonical_name(self, analyzer):
        analysis = analyzer.analyze("latest jre episode")

        assert "joe rogan" in analysis.entities
        assert analysis.intent == QueryIntent.SPECIFIC_PERSON
        assert analysis.content_type == ContentTypeHint.VIDEO
        assert analysis.timeframe == Timeframe.RECENT

    def test_alias_needs_word_boundary(self, analyzer):
        # "muskrat" must not match the "musk" alias
        analysis = analyzer.analyze("muskrat habitats")
        assert analysis.intent == QueryIntent.TOPIC
        assert "elon musk" not in analysis.entities

    def test_topic_query(self, analyzer):
        analysis = analyzer.analyze("marketing notes")

        assert analysis.topics == ["marketing"]
        assert analysis.intent == QueryIntent.TOPIC
        assert analysis.content_type == ContentTypeHint.TEXT

    def test_general_query(self, analyzer):
        analysis = analyzer.analyze("hi")

        assert analysis.entities == []
        assert analysis.intent == QueryIntent.GENERAL
        assert analysis.specificity == Specificity.LOW
        assert analysis.confidence == 0.5

    def test_quoted_phrase(self, analyzer):
        analysis = analyzer.analyze('find "deep work" ideas')
        assert "deep work" in analysis.entities
        assert analysis.specificity == Specificity.HIGH

    def test_specific_timeframe(self, analyzer):
        assert analyzer.analyze("knots from 2024").timeframe == Timeframe.SPECIFIC
        assert analyzer.analyze("knots in march").timeframe == Timeframe.SPECIFIC

    def test_mixed_content_type_is_any(self, analyzer):
        assert analyzer.analyze("video and article about knots").content_type == ContentTypeHint.ANY

    def test_confidence_bounded(self, analyzer):
        analysis = analyzer.analyze("What did Jordan Peterson and Elon Musk discuss on the JRE episode?")
        assert 0.0 <= analysis.confidence <= 1.0


class TestValidateAgainstIntent:
    def test_matching_video(self, analyzer, corpus):
        analysis = analyzer.analyze("Joe Rogan knots video")
        match = analyzer.validate_against_intent(analysis, corpus[1])

        assert match.matches is True
        assert match.score == pytest.approx(0.6)
        assert "Entity match: joe rogan" in match.reasons

    def test_high_specificity_without_entity_match(self, analyzer, corpus):
        analysis = analyzer.analyze("what did Joe Rogan say about knots")
        match = analyzer.validate_against_intent(analysis, corpus[2])

        assert match.matches is False
        assert match.score == 0.0

    def test_content_type_mismatch(self, analyzer):
        analysis = analyzer.analyze("knots video")
        note = make_document("n", "Knots", "tie them")
        match = analyzer.validate_against_intent(analysis, note)

        # +0.4 for "knots" in the title, -0.3 for a note when video was asked
        assert match.score == pytest.approx(0.1)
        assert match.matches is False

    def test_recency(self, analyzer):
        analysis = analyzer.analyze("recent knots")
        fresh = make_document("f", "Knots", "x", created_at=NOW - timedelta(days=2))
        stale = make_document("s", "Knots", "x", created_at=NOW - timedelta(days=60))

        assert analyzer.validate_against_intent(analysis, fresh).score == pytest.approx(0.6)
        assert analyzer.validate_against_intent(analysis, stale).score == pytest.approx(0.3)

    def test_accepts_search_results(self, analyzer, keyword, corpus):
        analysis = analyzer.analyze("Joe Rogan podcast video")
        result = next(r for r in keyword.score_documents(corpus, "joe rogan podcast") if r.id == "b")

        match = analyzer.validate_against_intent(analysis, result)

        assert match.matches is True
        assert result.source_type == SourceType.VIDEO
