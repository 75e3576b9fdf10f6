"""
HTTP embedding provider.

Speaks the OpenAI-compatible ``/v1/embeddings`` API and Ollama's
``/api/embeddings`` API through aiohttp.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from notemind.core.config import EmbeddingConfig
from notemind.core.exceptions import EmbeddingError, ValidationError
from notemind.core.logging import logger, masker
from notemind.core.tracing import MetricsCollector
from notemind.core.utils.datetime_utils import Clock
from notemind.core.utils.retry import retry_with_policy
from notemind.embeddings.cache import EmbeddingCache
from notemind.embeddings.types import EmbeddingCacheStats, EmbeddingVector


class HttpEmbeddingProvider:
    """
    Embedding provider backed by a remote model.

    Features:
    1. Input truncated to ``max_input_chars`` before hashing and sending
    2. SHA-256 keyed TTL cache, a hit never calls the network
    3. Per-call timeout
    4. Optional bounded retry (disabled by default)
    """

    def __init__(
        self,
        config: Optional[EmbeddingConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[EmbeddingCache] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or EmbeddingConfig()
        self.cache = cache or EmbeddingCache(
            max_size=self.config.cache_max_size,
            ttl_seconds=self.config.cache_ttl_seconds,
            clock=clock,
        )
        self.metrics = MetricsCollector(namespace="embeddings")
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    @property
    def endpoint(self) -> str:
        base = self.config.base_url.rstrip("/")
        if self.config.dialect == "ollama":
            return f"{base}/api/embeddings"
        return f"{base}/v1/embeddings"

    def _payload(self, text: str) -> Dict[str, Any]:
        if self.config.dialect == "ollama":
            return {"model": self.config.model, "prompt": text}
        return {"model": self.config.model, "input": text, "encoding_format": "float"}

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _extract(self, body: Dict[str, Any]) -> EmbeddingVector:
        if self.config.dialect == "ollama":
            values = body.get("embedding")
        else:
            try:
                values = body["data"][0]["embedding"]
            except (KeyError, IndexError, TypeError):
                values = None

        if not values:
            raise EmbeddingError(
                "Embedding response did not contain a vector",
                context={"service": "embeddings", "model": self.config.model},
            )
        try:
            return EmbeddingVector(values)
        except (TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid embedding returned: {e}",
                context={"service": "embeddings", "model": self.config.model},
                cause=e,
            )

    def truncate(self, text: str, limit: Optional[int] = None) -> str:
        return text[: limit or self.config.max_input_chars]

    async def embed(self, text: str) -> EmbeddingVector:
        """
        Generates the embedding of ``text``.

        Args:
            text: Input text, truncated to max_input_chars

        Returns:
            EmbeddingVector

        Raises:
            ValidationError: If text is empty
            EmbeddingError: On HTTP failure, timeout or malformed response
        """
        if not text or not text.strip():
            raise ValidationError("Cannot embed empty text")

        truncated = self.truncate(text)
        cached = self.cache.get(truncated)
        if cached is not None:
            self.metrics.increment("cache_hits")
            return cached

        self.metrics.increment("cache_misses")
        embedding = await retry_with_policy(
            lambda: self._request(truncated),
            self.config.retry,
            retry_on=(EmbeddingError,),
            logger=logger,
        )
        self.cache.set(truncated, embedding)
        return embedding

    async def embed_document(self, text: str) -> EmbeddingVector:
        """Embeds indexing input, truncated to ``document_max_chars``."""
        return await self.embed(self.truncate(text, self.config.document_max_chars))

    async def _request(self, text: str) -> EmbeddingVector:
        url = self.endpoint
        session = self._get_session()
        try:
            async with session.post(
                url,
                json=self._payload(text),
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            ) as response:
                if response.status >= 400:
                    detail = await response.text()
                    self.metrics.increment("errors")
                    raise EmbeddingError(
                        f"Embedding provider returned {response.status}",
                        context={
                            "service": "embeddings",
                            "status": response.status,
                            "detail": masker.mask(detail[:200]),
                        },
                    )
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.metrics.increment("errors")
            logger.error("Embedding request failed", url=masker.mask(url), error=masker.mask(str(e)))
            raise EmbeddingError(
                "Embedding provider unreachable",
                context={"service": "embeddings", "url": masker.mask(url)},
                cause=e,
            )

        self.metrics.increment("requests")
        return self._extract(body)

    def get_cache_stats(self) -> EmbeddingCacheStats:
        return self.cache.get_stats()

    async def close(self) -> None:
        """Close HTTP session if this provider created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
