import asyncio
from unittest.mock import MagicMock

import pytest

from notemind.core.config import LLMConfig, RetrievalConfig, SearchConfig, Settings
from notemind.core.exceptions import (
    AllStrategiesFailedError,
    ConfigurationError,
    CorpusUnavailableError,
    LLMError,
    SearchCancelledError,
    ValidationError,
)
from notemind.core.logging import perf_logger
from notemind.models.document import SourceType
from notemind.rag.retrieval import KeywordSearchStrategy, SemanticSearchStrategy
from notemind.rag.vector import InMemoryVectorStore, WeaviateVectorStore
from notemind.semantic import EMPTY_ANSWER_MESSAGE, NO_RESULTS_MESSAGE
from notemind.semantic.prompt_builder import SYSTEM_PROMPT
from notemind.services import SearchOrchestrator, SearchState

from conftest import FakeEmbedder, FakeLLM, make_document

QUERY = "rock climbing knots"

FULL_TRACE = [
    "IDLE",
    "CACHE_CHECK",
    "CACHE_MISS",
    "SEARCHING",
    "MERGING",
    "VALIDATING",
    "CACHE_STORE",
    "CONTEXT_BUILD",
    "DONE",
]


class BrokenKeyword(KeywordSearchStrategy):
    async def search(self, corpus, query):
        raise RuntimeError("keyword index corrupted")


async def indexed(embedder, corpus, config=None):
    config = config or RetrievalConfig()
    semantic = SemanticSearchStrategy(embedder, InMemoryVectorStore(), config.search)
    for document in corpus:
        await semantic.upsert(document)
    return semantic


def build(corpus, semantic, clock, rag_metrics, keyword=None, **kwargs):
    return SearchOrchestrator(
        corpus_loader=lambda: list(corpus),
        keyword=keyword or KeywordSearchStrategy(),
        semantic=semantic,
        clock=clock,
        metrics=rag_metrics,
        **kwargs,
    )


class TestSearch:
    async def test_hybrid_pipeline(self, orchestrator):
        response = await orchestrator.search(QUERY)

        assert response.results[0].id == "a"
        assert response.state_trace == FULL_TRACE
        assert response.metrics.strategy == "hybrid"
        assert response.metrics.cache_hit is False
        assert response.metrics.result_count == len(response.results)
        assert 0.0 < response.metrics.quality_score <= 1.0
        assert response.no_relevant_content is False
        assert "[NOTE] Intro to Rock Climbing Knots:\n" in response.context

    async def test_results_sorted_and_bounded(self, orchestrator):
        response = await orchestrator.search(QUERY)
        relevances = [r.relevance for r in response.results]
        assert relevances == sorted(relevances, reverse=True)
        assert all(0.0 <= r <= 1.0 for r in relevances)

    async def test_repeat_query_served_from_cache(self, orchestrator, embedder, loader_calls):
        first = await orchestrator.search(QUERY)
        embeds = len(embedder.calls)

        second = await orchestrator.search(QUERY)

        assert second.metrics.cache_hit is True
        assert second.state_trace == ["IDLE", "CACHE_CHECK", "CACHE_HIT", "CONTEXT_BUILD", "DONE"]
        assert [r.id for r in second.results] == [r.id for r in first.results]
        assert second.context == first.context
        assert len(embedder.calls) == embeds
        assert len(loader_calls) == 1

    async def test_normalized_query_hits_cache(self, orchestrator):
        await orchestrator.search(QUERY)
        response = await orchestrator.search("  ROCK climbing   knots ")
        assert response.metrics.cache_hit is True

    async def test_cache_expires(self, orchestrator, clock):
        await orchestrator.search(QUERY)
        clock.advance(91)
        assert (await orchestrator.search(QUERY)).metrics.cache_hit is False

    async def test_strategies_cached_separately(self, orchestrator):
        await orchestrator.search(QUERY, strategy="hybrid")
        response = await orchestrator.search(QUERY, strategy="keyword")
        assert response.metrics.cache_hit is False

    async def test_empty_query(self, orchestrator, embedder, loader_calls):
        embeds = len(embedder.calls)

        response = await orchestrator.search("   ")

        assert response.results == []
        assert response.no_relevant_content is True
        assert response.state_trace == ["IDLE", "DONE"]
        assert len(embedder.calls) == embeds
        assert loader_calls == []

    async def test_unknown_strategy(self, orchestrator):
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.search(QUERY, strategy="fuzzy")
        assert exc_info.value.suggestions

    async def test_keyword_strategy(self, orchestrator, embedder):
        embeds = len(embedder.calls)
        response = await orchestrator.search(QUERY, strategy="keyword")

        assert response.results[0].id == "a"
        assert {r.search_method for r in response.results} == {"keyword"}
        assert len(embedder.calls) == embeds

    async def test_semantic_strategy(self, orchestrator):
        response = await orchestrator.search(QUERY, strategy="semantic")
        assert response.results[0].id == "a"
        assert {r.search_method for r in response.results} == {"semantic"}

    async def test_no_match_is_not_cached(self, orchestrator):
        response = await orchestrator.search("quantum chromodynamics")

        assert response.results == []
        assert response.no_relevant_content is True
        assert response.context == ""
        assert orchestrator.cache_stats()["size"] == 0

    async def test_creator_conflicts_filtered(self, orchestrator, corpus):
        corpus.append(
            make_document(
                "e",
                "What knots say about you",
                "What your knots say about you, explained by a rigger.",
                source_type=SourceType.VIDEO,
                channel_name="RandomClips",
            )
        )

        response = await orchestrator.search("what did Joe Rogan say about knots")

        ids = [r.id for r in response.results]
        assert "b" in ids
        assert "e" not in ids

    async def test_async_corpus_loader(self, indexed_semantic, corpus, clock, rag_metrics):
        async def load():
            return corpus

        orchestrator = SearchOrchestrator(
            corpus_loader=load,
            keyword=KeywordSearchStrategy(),
            semantic=indexed_semantic,
            clock=clock,
            metrics=rag_metrics,
        )
        assert (await orchestrator.search(QUERY)).results[0].id == "a"

    async def test_search_metrics_recorded(self, orchestrator, rag_metrics):
        await orchestrator.search(QUERY)
        await orchestrator.search(QUERY)

        summary = rag_metrics.get_search_summary()
        assert summary["total_searches"] == 2
        assert summary["cache_hit_rate"] == 0.5
        assert summary["hybrid_searches"] == 2


class TestFailures:
    async def test_semantic_failure_degrades_to_keyword(self, corpus, clock, rag_metrics):
        semantic = SemanticSearchStrategy(FakeEmbedder(fail=True), InMemoryVectorStore())
        orchestrator = build(corpus, semantic, clock, rag_metrics)

        response = await orchestrator.search(QUERY)

        assert response.results[0].id == "a"
        assert {r.search_method for r in response.results} == {"keyword"}

    async def test_semantic_only_failure_is_empty(self, corpus, clock, rag_metrics):
        semantic = SemanticSearchStrategy(FakeEmbedder(fail=True), InMemoryVectorStore())
        orchestrator = build(corpus, semantic, clock, rag_metrics)

        response = await orchestrator.search(QUERY, strategy="semantic")

        assert response.no_relevant_content is True

    async def test_all_strategies_failed(self, corpus, clock, rag_metrics):
        semantic = SemanticSearchStrategy(FakeEmbedder(fail=True), InMemoryVectorStore())
        orchestrator = build(corpus, semantic, clock, rag_metrics, keyword=BrokenKeyword())

        with pytest.raises(AllStrategiesFailedError):
            await orchestrator.search(QUERY)

        assert rag_metrics.get_search_summary()["failures"] == 1
        assert orchestrator.cache_stats()["size"] == 0

    async def test_keyword_failure(self, indexed_semantic, corpus, clock, rag_metrics):
        orchestrator = build(corpus, indexed_semantic, clock, rag_metrics, keyword=BrokenKeyword())

        with pytest.raises(AllStrategiesFailedError):
            await orchestrator.search(QUERY, strategy="keyword")

        # Hybrid still works on semantic results alone
        assert (await orchestrator.search(QUERY)).results[0].id == "a"

    async def test_corpus_unavailable(self, indexed_semantic, clock, rag_metrics):
        def load():
            raise OSError("notes database locked")

        orchestrator = SearchOrchestrator(
            corpus_loader=load,
            keyword=KeywordSearchStrategy(),
            semantic=indexed_semantic,
            clock=clock,
            metrics=rag_metrics,
        )

        with pytest.raises(CorpusUnavailableError) as exc_info:
            await orchestrator.search(QUERY)
        assert isinstance(exc_info.value.cause, OSError)
        assert rag_metrics.get_search_summary()["failures"] == 1


class TestSessions:
    async def test_newer_search_cancels_older(self, corpus, clock, rag_metrics):
        slow = FakeEmbedder(delay=0.05)
        orchestrator = build(corpus, await indexed(slow, corpus), clock, rag_metrics)

        first = asyncio.ensure_future(orchestrator.search(QUERY, session_id="s1"))
        await asyncio.sleep(0.01)
        second = await orchestrator.search("weeknight pasta", session_id="s1")

        with pytest.raises(SearchCancelledError):
            await first
        assert second.results[0].id == "c"
        assert orchestrator.cache.get(QUERY, "hybrid") is None

    async def test_other_sessions_unaffected(self, corpus, clock, rag_metrics):
        slow = FakeEmbedder(delay=0.05)
        orchestrator = build(corpus, await indexed(slow, corpus), clock, rag_metrics)

        first, second = await asyncio.gather(
            orchestrator.search(QUERY, session_id="s1"),
            orchestrator.search("weeknight pasta", session_id="s2"),
        )

        assert first.results[0].id == "a"
        assert second.results[0].id == "c"

    async def test_cancel(self, corpus, clock, rag_metrics):
        slow = FakeEmbedder(delay=0.05)
        orchestrator = build(corpus, await indexed(slow, corpus), clock, rag_metrics)

        task = asyncio.ensure_future(orchestrator.search(QUERY, session_id="s1"))
        await asyncio.sleep(0.01)
        assert orchestrator.cancel("s1") is True

        with pytest.raises(SearchCancelledError):
            await task
        assert orchestrator.cancel("s1") is False
        assert orchestrator.cancel("unknown") is False


class TestSingleFlight:
    async def test_identical_misses_share_one_run(self, corpus, clock, rag_metrics):
        slow = FakeEmbedder(delay=0.05)
        orchestrator = build(corpus, await indexed(slow, corpus), clock, rag_metrics)
        embeds = len(slow.calls)

        first, second = await asyncio.gather(orchestrator.search(QUERY), orchestrator.search(QUERY))

        assert len(slow.calls) - embeds == 1
        assert [r.id for r in first.results] == [r.id for r in second.results]

    async def test_disabled(self, corpus, clock, rag_metrics):
        config = RetrievalConfig(search=SearchConfig(single_flight=False))
        slow = FakeEmbedder(delay=0.05)
        orchestrator = build(corpus, await indexed(slow, corpus, config), clock, rag_metrics, config=config)
        embeds = len(slow.calls)

        await asyncio.gather(orchestrator.search(QUERY), orchestrator.search(QUERY))

        assert len(slow.calls) - embeds == 2

    async def test_shared_failure_reaches_every_caller(self, corpus, clock, rag_metrics):
        semantic = SemanticSearchStrategy(FakeEmbedder(fail=True, delay=0.02), InMemoryVectorStore())
        orchestrator = build(corpus, semantic, clock, rag_metrics, keyword=BrokenKeyword())

        outcomes = await asyncio.gather(
            orchestrator.search(QUERY), orchestrator.search(QUERY), return_exceptions=True
        )

        assert all(isinstance(o, AllStrategiesFailedError) for o in outcomes)


class TestAnswer:
    async def test_answer_with_sources(self, orchestrator, llm):
        response = await orchestrator.answer(QUERY)

        assert response.used_llm is True
        assert response.answer == "Use a figure eight knot."
        assert response.sources[0].id == "a"
        assert len(response.sources) <= 4

        call = llm.calls[0]
        assert call["system"] == SYSTEM_PROMPT
        assert call["temperature"] == 0.6
        assert call["max_tokens"] == 2000
        assert "Search Strategy: hybrid" in call["prompt"]
        assert "USER QUESTION: rock climbing knots" in call["prompt"]
        assert response.context in call["prompt"]

    async def test_no_results_skips_llm(self, orchestrator, llm):
        response = await orchestrator.answer("quantum chromodynamics")

        assert response.answer == NO_RESULTS_MESSAGE
        assert response.used_llm is False
        assert response.sources == []
        assert llm.calls == []

    async def test_empty_completion(self, indexed_semantic, corpus, clock, rag_metrics):
        orchestrator = build(corpus, indexed_semantic, clock, rag_metrics, llm=FakeLLM(answer="  "))
        assert (await orchestrator.answer(QUERY)).answer == EMPTY_ANSWER_MESSAGE

    async def test_without_llm(self, indexed_semantic, corpus, clock, rag_metrics):
        orchestrator = build(corpus, indexed_semantic, clock, rag_metrics)
        with pytest.raises(ConfigurationError):
            await orchestrator.answer(QUERY)

    async def test_completion_timeout(self, indexed_semantic, corpus, clock, rag_metrics):
        config = RetrievalConfig(llm=LLMConfig(timeout_seconds=0.01))
        orchestrator = build(
            corpus, indexed_semantic, clock, rag_metrics, llm=FakeLLM(delay=0.2), config=config
        )
        with pytest.raises(LLMError, match="timed out"):
            await orchestrator.answer(QUERY)


class TestHelpers:
    async def test_build_context(self, orchestrator):
        response = await orchestrator.search(QUERY)
        assert orchestrator.build_context(response.results, QUERY) == response.context

    async def test_cache_stats_and_clear(self, orchestrator):
        await orchestrator.search(QUERY)
        assert orchestrator.cache_stats() == {"size": 1, "capacity": 25, "ttl": 90}

        orchestrator.clear_cache()
        assert orchestrator.cache_stats()["size"] == 0

    def test_states(self):
        assert SearchState.CACHE_HIT.value == "CACHE_HIT"
        assert [s.value for s in SearchState][-1] == "FAILED"

    def test_from_settings(self, corpus, clock):
        settings = Settings(overrides={"search": {"top_k": 3}}, use_env=False)
        orchestrator = SearchOrchestrator.from_settings(
            lambda: corpus, settings=settings, embedder=FakeEmbedder(), llm=FakeLLM(), clock=clock
        )

        assert orchestrator.config.search.top_k == 3
        assert orchestrator.semantic.config.top_k == 3
        assert isinstance(orchestrator.semantic.store, InMemoryVectorStore)
        assert orchestrator.cache.capacity == 25

    def test_from_settings_weaviate_backend_from_env(self, corpus, clock, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("NOTEMIND_CONFIG", raising=False)
        monkeypatch.setenv("NOTEMIND_VECTOR_BACKEND", "weaviate")
        monkeypatch.setenv("NOTEMIND_WEAVIATE_URL", "http://weaviate:8080")
        client_cls = MagicMock(name="Client")
        monkeypatch.setattr("weaviate.Client", client_cls)

        orchestrator = SearchOrchestrator.from_settings(
            lambda: corpus, settings=Settings(), embedder=FakeEmbedder(), llm=FakeLLM(), clock=clock
        )

        assert isinstance(orchestrator.semantic.store, WeaviateVectorStore)
        assert orchestrator.semantic.store.class_name == "NoteChunk"
        client_cls.assert_called_once_with("http://weaviate:8080")

    def test_from_settings_weaviate_backend_from_yaml(self, corpus, clock, monkeypatch, tmp_path):
        config_file = tmp_path / "notemind.yaml"
        config_file.write_text("vector:\n  backend: weaviate\n  class_name: Notes\n", encoding="utf-8")
        monkeypatch.setattr("weaviate.Client", MagicMock(name="Client"))

        orchestrator = SearchOrchestrator.from_settings(
            lambda: corpus,
            settings=Settings(config_path=config_file, use_env=False),
            embedder=FakeEmbedder(),
            llm=FakeLLM(),
            clock=clock,
        )

        assert orchestrator.semantic.store.class_name == "Notes"

    def test_from_settings_unknown_backend(self, corpus, clock):
        settings = Settings(overrides={"vector": {"backend": "pinecone"}}, use_env=False)
        with pytest.raises(ConfigurationError):
            SearchOrchestrator.from_settings(
                lambda: corpus, settings=settings, embedder=FakeEmbedder(), llm=FakeLLM(), clock=clock
            )

    async def test_pipeline_is_timed(self, orchestrator, monkeypatch):
        perf_log = MagicMock()
        monkeypatch.setattr(perf_logger, "logger", perf_log)

        await orchestrator.search(QUERY)
        await orchestrator.search(QUERY)

        perf_log.info.assert_called_once()
        assert perf_log.info.call_args.kwargs["operation"] == "search_pipeline"
        assert perf_log.info.call_args.kwargs["strategy"] == "hybrid"
