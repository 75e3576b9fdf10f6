"""
Shared fixtures: a manual clock, a small corpus, a deterministic embedder
and fake aiohttp/LLM collaborators.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from notemind.core.config import RetrievalConfig
from notemind.core.exceptions import EmbeddingError
from notemind.core.utils.datetime_utils import ManualClock
from notemind.embeddings.types import EmbeddingVector
from notemind.models.document import Document, SourceType
from notemind.rag.chunking import TextChunker
from notemind.rag.retrieval import (
    KeywordSearchStrategy,
    RAGMetrics,
    SemanticSearchStrategy,
)
from notemind.rag.vector import InMemoryVectorStore
from notemind.services import SearchOrchestrator

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
CREATED = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)

# Each axis counts occurrences of one stem; the last axis is a small bias
# so no text embeds to the zero vector.
VOCABULARY = ["climb", "knot", "rogan", "podcast", "cook", "pasta", "fail", "react"]
BIAS = 0.05


class FakeEmbedder:
    """Bag-of-stems embedder that counts its calls."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.calls: List[str] = []

    async def embed(self, text: str) -> EmbeddingVector:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise EmbeddingError("embedder down", context={"service": "embeddings"})
        lowered = text.lower()
        return EmbeddingVector([float(lowered.count(stem)) for stem in VOCABULARY] + [BIAS])


class FakeLLM:
    """Completer that records its prompts."""

    def __init__(self, answer: str = "Use a figure eight knot.", delay: float = 0.0):
        self.answer = answer
        self.delay = delay
        self.calls: List[dict] = []

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        self.calls.append(
            {"prompt": prompt, "system": system, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.answer


class FakeResponse:
    """Async context manager standing in for aiohttp.ClientResponse."""

    def __init__(self, status: int = 200, body: Optional[dict] = None, text: str = ""):
        self.status = status
        self._body = body or {}
        self._text = text

    async def json(self):
        return self._body

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Records POSTs and replays canned responses (the last one repeats)."""

    def __init__(self, responses: Optional[List[FakeResponse]] = None, error: Optional[Exception] = None):
        self.responses = list(responses or [FakeResponse()])
        self.error = error
        self.calls: List[dict] = []
        self.closed = False

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    async def close(self):
        self.closed = True


def make_document(doc_id: str, title: str, content: Optional[str], **kwargs) -> Document:
    kwargs.setdefault("created_at", CREATED)
    return Document(id=doc_id, title=title, content=content, **kwargs)


@pytest.fixture
def clock():
    return ManualClock(start=NOW)


@pytest.fixture
def corpus():
    return [
        make_document(
            "a",
            "Intro to Rock Climbing Knots",
            "Climbing knots keep you safe. The figure eight knot is the standard "
            "tie-in knot for climbing. Practice every knot before you climb.",
        ),
        make_document(
            "b",
            "Joe Rogan Podcast #500",
            "Joe Rogan talks with a climber about fear, training and the podcast life. "
            "They also discuss knots briefly.",
            source_type=SourceType.VIDEO,
            channel_name="PowerfulJRE",
            video_id="jre500",
        ),
        make_document(
            "c",
            "Weeknight Pasta",
            "Cook the pasta in salted water and finish it in the sauce. Good pasta "
            "needs very little else.",
        ),
        make_document(
            "d",
            "Streamer reacts to climbing fails",
            "A streamer reacts to climbing fails and laughs at every fall.",
            source_type=SourceType.VIDEO,
            channel_name="ReactChannel",
        ),
    ]


@pytest.fixture
def config():
    return RetrievalConfig()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def semantic(embedder, store, config):
    return SemanticSearchStrategy(embedder, store, config.search, chunker=TextChunker(config.chunk_size))


@pytest.fixture
def keyword(config):
    return KeywordSearchStrategy(config.search)


@pytest.fixture
async def indexed_semantic(semantic, corpus):
    for document in corpus:
        await semantic.upsert(document)
    return semantic


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def rag_metrics():
    return RAGMetrics()


@pytest.fixture
def loader_calls():
    return []


@pytest.fixture
def orchestrator(corpus, keyword, indexed_semantic, llm, config, clock, rag_metrics, loader_calls):
    def load():
        loader_calls.append(1)
        return list(corpus)

    return SearchOrchestrator(
        corpus_loader=load,
        keyword=keyword,
        semantic=indexed_semantic,
        llm=llm,
        config=config,
        clock=clock,
        metrics=rag_metrics,
    )
