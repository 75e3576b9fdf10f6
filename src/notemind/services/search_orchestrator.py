"""
Search Orchestrator - Retrieval Pipeline.

Runs one query through cache lookup, strategy search, re-ranking,
validation, cache store and context assembly, and answers questions
with the language model on top of that context.
"""

import asyncio
import inspect
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from notemind.core.config import RetrievalConfig, Settings
from notemind.core.exceptions import (
    AllStrategiesFailedError,
    ConfigurationError,
    CorpusUnavailableError,
    LLMError,
    SearchCancelledError,
    ValidationError,
)
from notemind.core.llm import Completer, LLMClient
from notemind.core.logging import logger, perf_logger
from notemind.core.tracing import tracer
from notemind.core.utils.datetime_utils import Clock, system_clock
from notemind.embeddings.provider import HttpEmbeddingProvider
from notemind.embeddings.types import EmbeddingProvider
from notemind.models.document import Document
from notemind.models.search import (
    AnswerResponse,
    SearchMetrics,
    SearchResponse,
    SearchResult,
    SearchStrategy,
)
from notemind.rag.chunking import TextChunker
from notemind.rag.context import ContextBuilder
from notemind.rag.retrieval import (
    HybridMerger,
    KeywordSearchStrategy,
    RAGMetrics,
    ResultCache,
    ResultProcessor,
    SemanticSearchStrategy,
    get_rag_metrics,
    result_quality,
)
from notemind.rag.vector import VectorStore, create_vector_store
from notemind.semantic import (
    EMPTY_ANSWER_MESSAGE,
    NO_RESULTS_MESSAGE,
    PromptBuilder,
    RelevanceValidator,
)

CorpusLoader = Callable[[], Union[Iterable[Document], Awaitable[Iterable[Document]]]]

ANSWER_SOURCE_LIMIT = 4


class SearchState(str, Enum):
    IDLE = "IDLE"
    CACHE_CHECK = "CACHE_CHECK"
    CACHE_HIT = "CACHE_HIT"
    CACHE_MISS = "CACHE_MISS"
    SEARCHING = "SEARCHING"
    MERGING = "MERGING"
    VALIDATING = "VALIDATING"
    CACHE_STORE = "CACHE_STORE"
    CONTEXT_BUILD = "CONTEXT_BUILD"
    DONE = "DONE"
    FAILED = "FAILED"


class SearchOrchestrator:
    """
    Coordinates retrieval for one knowledge base.

    PIPELINE:
    1. Cache check → hit skips straight to context building
    2. Strategy search → keyword, semantic or hybrid
    3. Merging → context snippets and re-ranking boosts
    4. Validation → entity, channel and content-type checks
    5. Cache store
    6. Context build → top results within a character budget

    SESSIONS:
    - A new search for a session cancels that session's in-flight search
    - The cancelled caller receives SearchCancelledError
    - Identical concurrent misses share one pipeline run (single-flight)
    """

    def __init__(
        self,
        corpus_loader: CorpusLoader,
        keyword: KeywordSearchStrategy,
        semantic: SemanticSearchStrategy,
        hybrid: Optional[HybridMerger] = None,
        cache: Optional[ResultCache] = None,
        validator: Optional[RelevanceValidator] = None,
        context_builder: Optional[ContextBuilder] = None,
        processor: Optional[ResultProcessor] = None,
        llm: Optional[Completer] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        config: Optional[RetrievalConfig] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[RAGMetrics] = None,
    ):
        self.config = config or RetrievalConfig()
        self.clock = clock or system_clock
        self.corpus_loader = corpus_loader
        self.keyword = keyword
        self.semantic = semantic
        self.hybrid = hybrid or HybridMerger(keyword, semantic, self.config.search)
        self.cache = cache or ResultCache(
            ttl_seconds=self.config.cache.ttl_seconds,
            capacity=self.config.cache.capacity,
            target=self.config.cache.target,
            clock=self.clock,
        )
        self.validator = validator or RelevanceValidator(self.config.validation)
        self.context_builder = context_builder or ContextBuilder(self.config.context)
        self.processor = processor or ResultProcessor(clock=self.clock)
        self.llm = llm
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.metrics = metrics or get_rag_metrics()

        self._sessions: Dict[str, asyncio.Task] = {}
        self._cancelled: Set[asyncio.Task] = set()
        self._inflight: Dict[str, asyncio.Future] = {}

        logger.info(
            "SearchOrchestrator initialized",
            single_flight=self.config.search.single_flight,
            strict_validation=self.config.validation.strict_mode,
            llm=llm is not None,
        )

    @classmethod
    def from_settings(
        cls,
        corpus_loader: CorpusLoader,
        settings: Optional[Settings] = None,
        embedder: Optional[EmbeddingProvider] = None,
        store: Optional[VectorStore] = None,
        llm: Optional[Completer] = None,
        clock: Optional[Clock] = None,
    ) -> "SearchOrchestrator":
        """
        Wire a complete orchestrator from configuration.

        Missing collaborators default to the HTTP embedding provider, the
        store named by ``vector.backend`` and the HTTP completion client.

        Raises:
            ConfigurationError: Invalid settings or unknown vector backend
        """
        config = RetrievalConfig.from_settings(settings)
        clock = clock or system_clock
        embedder = embedder or HttpEmbeddingProvider(config.embeddings, clock=clock)
        store = store if store is not None else create_vector_store(config.vector)
        semantic = SemanticSearchStrategy(
            embedder,
            store,
            config.search,
            chunker=TextChunker(config.chunk_size),
            embed_timeout=config.embeddings.timeout_seconds,
        )
        return cls(
            corpus_loader=corpus_loader,
            keyword=KeywordSearchStrategy(config.search),
            semantic=semantic,
            llm=llm or LLMClient(config.llm),
            config=config,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        strategy: Union[str, SearchStrategy] = SearchStrategy.HYBRID,
        session_id: Optional[str] = None,
    ) -> SearchResponse:
        """
        Search the knowledge base.

        Args:
            query: Free-text query
            strategy: keyword, semantic or hybrid
            session_id: Caller session; a newer search cancels an older one

        Returns:
            SearchResponse with validated results, metrics, context and the
            states the pipeline went through

        Raises:
            ValidationError: Unknown strategy
            CorpusUnavailableError: The corpus could not be loaded
            AllStrategiesFailedError: Every strategy faulted
            SearchCancelledError: A newer search for the session replaced this one
        """
        strategy = self._parse_strategy(strategy)

        if not query or not query.strip():
            return SearchResponse(
                metrics=SearchMetrics(strategy=strategy),
                no_relevant_content=True,
                state_trace=[SearchState.IDLE.value, SearchState.DONE.value],
            )

        if session_id is None:
            return await self._run(query, strategy)

        previous = self._sessions.get(session_id)
        if previous is not None and not previous.done():
            self._cancel_task(previous)
            logger.info("Cancelled superseded search", session_id=session_id)

        task = asyncio.ensure_future(self._run(query, strategy))
        self._sessions[session_id] = task
        try:
            return await task
        except asyncio.CancelledError:
            if task in self._cancelled:
                self._cancelled.discard(task)
                raise SearchCancelledError(
                    "Search was cancelled by a newer request",
                    context={"session_id": session_id, "query": query[:50]},
                )
            raise
        finally:
            if self._sessions.get(session_id) is task:
                del self._sessions[session_id]

    def build_context(self, results: List[SearchResult], query: str) -> str:
        """Budgeted context from the top results."""
        top = results[: self.config.search.context_results]
        return self.context_builder.build(top, query, result_quality(top))

    def cache_stats(self) -> Dict[str, Any]:
        return {
            "size": len(self.cache),
            "capacity": self.cache.capacity,
            "ttl": self.cache.ttl_seconds,
        }

    def cancel(self, session_id: str) -> bool:
        """Cancel the session's in-flight search, if any."""
        task = self._sessions.get(session_id)
        if task is None or task.done():
            return False
        self._cancel_task(task)
        return True

    def clear_cache(self) -> None:
        self.cache.clear()

    async def answer(
        self,
        query: str,
        strategy: Union[str, SearchStrategy] = SearchStrategy.HYBRID,
        session_id: Optional[str] = None,
    ) -> AnswerResponse:
        """
        Answer a question from the knowledge base.

        Searches, builds the context and asks the language model. With no
        relevant results the fixed no-content message is returned and the
        model is not called.

        Raises:
            ConfigurationError: No LLM configured
            LLMError: The completion failed or timed out
        """
        response = await self.search(query, strategy, session_id)
        top = response.results[: self.config.search.context_results]

        if not top:
            return AnswerResponse(
                answer=NO_RESULTS_MESSAGE,
                context=response.context,
                metrics=response.metrics,
                used_llm=False,
            )

        if self.llm is None:
            error = ConfigurationError(
                "No language model configured", context={"operation": "answer"}
            )
            error.add_suggestion("Pass llm= to SearchOrchestrator")
            raise error

        quality = result_quality(top)
        prompt = self.prompt_builder.build_rag_prompt(
            response.context,
            query,
            quality,
            response.metrics.strategy,
            len(top),
        )

        llm_config = self.config.llm
        try:
            with tracer.span("llm_answer", {"sources": len(top)}):
                text = await asyncio.wait_for(
                    self.llm.complete(
                        prompt,
                        system=self.prompt_builder.system_prompt,
                        temperature=llm_config.temperature,
                        max_tokens=llm_config.max_tokens,
                    ),
                    timeout=llm_config.timeout_seconds,
                )
        except asyncio.TimeoutError as e:
            raise LLMError(
                "Completion timed out",
                context={"service": "llm", "timeout": llm_config.timeout_seconds},
                cause=e,
            )

        logger.info(
            "Answer generated",
            query=query[:50],
            sources=len(top),
            quality=round(quality, 3),
            chars=len(text or ""),
        )
        return AnswerResponse(
            answer=(text or "").strip() or EMPTY_ANSWER_MESSAGE,
            sources=top[:ANSWER_SOURCE_LIMIT],
            context=response.context,
            metrics=response.metrics,
            used_llm=True,
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_strategy(strategy: Union[str, SearchStrategy]) -> SearchStrategy:
        try:
            return SearchStrategy(strategy)
        except ValueError:
            error = ValidationError(
                f"Unknown search strategy: {strategy}", context={"strategy": str(strategy)}
            )
            error.add_suggestion(f"Use one of: {', '.join(s.value for s in SearchStrategy)}")
            raise error

    def _cancel_task(self, task: asyncio.Task) -> None:
        self._cancelled.add(task)
        task.cancel()

    @staticmethod
    def _transition(trace: List[str], state: SearchState) -> None:
        trace.append(state.value)
        logger.debug("Search state", state=state.value)

    async def _run(self, query: str, strategy: SearchStrategy) -> SearchResponse:
        started = time.perf_counter()
        trace: List[str] = []
        self._transition(trace, SearchState.IDLE)

        self._transition(trace, SearchState.CACHE_CHECK)
        cached = self.cache.get(query, strategy)
        cache_hit = cached is not None

        try:
            if cache_hit:
                self._transition(trace, SearchState.CACHE_HIT)
                results = cached
            else:
                self._transition(trace, SearchState.CACHE_MISS)
                with tracer.span("search", {"strategy": strategy.value}):
                    results = await self._search_shared(query, strategy, trace)
        except (AllStrategiesFailedError, CorpusUnavailableError) as e:
            self._transition(trace, SearchState.FAILED)
            self.metrics.record_failure(strategy.value, str(e))
            logger.error("Search failed", query=query[:50], strategy=strategy.value, error=str(e))
            raise

        self._transition(trace, SearchState.CONTEXT_BUILD)
        context = self.build_context(results, query)
        top = results[: self.config.search.context_results]
        self._transition(trace, SearchState.DONE)

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.metrics.record_search(query, elapsed_ms, cache_hit, len(results), strategy.value)

        return SearchResponse(
            results=results,
            metrics=SearchMetrics(
                search_time_ms=elapsed_ms,
                result_count=len(results),
                strategy=strategy,
                cache_hit=cache_hit,
                quality_score=result_quality(top),
            ),
            no_relevant_content=not results,
            context=context,
            state_trace=trace,
        )

    async def _search_shared(
        self, query: str, strategy: SearchStrategy, trace: List[str]
    ) -> List[SearchResult]:
        """Run the pipeline, joining an identical in-flight run when allowed."""
        if not self.config.search.single_flight:
            return await self._execute(query, strategy, trace)

        key = self.cache.make_key(query, strategy)
        existing = self._inflight.get(key)
        if existing is not None:
            try:
                results = await asyncio.shield(existing)
                self._transition(trace, SearchState.SEARCHING)
                logger.debug("Joined in-flight search", key=key)
                return list(results)
            except asyncio.CancelledError:
                if not existing.cancelled():
                    raise
                # Leader was cancelled, run our own pipeline

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            results = await self._execute(query, strategy, trace)
            future.set_result(results)
            return results
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved when nobody joined
            future.exception()
            raise
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    async def _load_corpus(self) -> Tuple[Document, ...]:
        try:
            loaded = self.corpus_loader()
            if inspect.isawaitable(loaded):
                loaded = await loaded
            return tuple(loaded)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise CorpusUnavailableError(
                "Could not load documents",
                context={"error_type": type(e).__name__},
                cause=e,
            )

    async def _run_strategy(
        self, corpus: Tuple[Document, ...], query: str, strategy: SearchStrategy
    ) -> List[SearchResult]:
        if strategy == SearchStrategy.HYBRID:
            return await self.hybrid.search(corpus, query)
        if strategy == SearchStrategy.SEMANTIC:
            return await self.semantic.search(corpus, query)
        try:
            return await self.keyword.search(corpus, query)
        except Exception as e:
            raise AllStrategiesFailedError(
                "Keyword search failed",
                context={"strategy": strategy.value, "keyword_error": str(e)},
                cause=e,
            )

    async def _execute(
        self, query: str, strategy: SearchStrategy, trace: List[str]
    ) -> List[SearchResult]:
        with perf_logger.measure("search_pipeline", strategy=strategy.value):
            return await self._pipeline(query, strategy, trace)

    async def _pipeline(
        self, query: str, strategy: SearchStrategy, trace: List[str]
    ) -> List[SearchResult]:
        corpus = await self._load_corpus()

        self._transition(trace, SearchState.SEARCHING)
        raw = await self._run_strategy(corpus, query, strategy)

        self._transition(trace, SearchState.MERGING)
        optimized = self.processor.optimize_for_context(raw, query)
        ranked = self.processor.rerank(optimized)
        self.metrics.record_rerank_impact(
            [after.relevance - before.relevance for before, after in _pair_by_id(optimized, ranked)]
        )

        self._transition(trace, SearchState.VALIDATING)
        report = self.validator.filter_results(ranked, query)
        self.metrics.record_filter_impact("validation", len(ranked), len(report.results))

        self._transition(trace, SearchState.CACHE_STORE)
        if report.results:
            self.cache.set(query, strategy, report.results)

        logger.info(
            "Search completed",
            query=query[:50],
            strategy=strategy.value,
            candidates=len(raw),
            results=len(report.results),
            rejected=len(report.rejected),
        )
        return report.results


def _pair_by_id(before: List[SearchResult], after: List[SearchResult]):
    by_id = {r.id: r for r in before}
    return [(by_id[r.id], r) for r in after if r.id in by_id]
