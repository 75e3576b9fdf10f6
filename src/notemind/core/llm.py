"""
Completion client used to answer questions over the assembled context.
"""

import asyncio
import aiohttp
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from notemind.core.config import LLMConfig
from notemind.core.exceptions import LLMError
from notemind.core.logging import logger, masker
from notemind.core.utils.retry import RetryPolicy, retry_with_policy


@runtime_checkable
class Completer(Protocol):
    """Anything that turns a system and user prompt into text."""

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str: ...


class LLMClient:
    """
    Thin aiohttp client for a chat completion endpoint.

    Dialects:
    1. "openai": POST {base_url}/v1/chat/completions -> choices[0].message.content
    2. "ollama": POST {base_url}/api/generate -> response
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.config = config or LLMConfig()
        self.retry = retry or RetryPolicy()
        self._session = session
        self._owns_session = session is None
        logger.info("LLMClient ready", base_url=self.config.base_url, model=self.config.model)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _build_request(
        self, prompt: str, system: Optional[str], temperature: float, max_tokens: int
    ) -> tuple:
        base = self.config.base_url.rstrip("/")
        if self.config.dialect == "ollama":
            payload: Dict[str, Any] = {
                "model": self.config.model,
                "prompt": prompt,
                "stream": False,
                "options": {"temperature": temperature, "num_predict": max_tokens},
            }
            if system:
                payload["system"] = system
            return f"{base}/api/generate", payload

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload = {
            "model": self.config.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        return f"{base}/v1/chat/completions", payload

    @staticmethod
    def _extract_text(dialect: str, body: Dict[str, Any]) -> str:
        if dialect == "ollama":
            text = body.get("response")
        else:
            try:
                text = body["choices"][0]["message"]["content"]
            except (KeyError, IndexError, TypeError):
                text = None
        if not isinstance(text, str):
            raise LLMError(
                "Completion response did not contain text",
                context={"service": "llm", "keys": sorted(body.keys())},
            )
        return text

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generates a completion.

        Args:
            prompt: User prompt
            system: Optional system prompt
            temperature: Overrides the configured temperature
            max_tokens: Overrides the configured max_tokens

        Returns:
            Generated text

        Raises:
            LLMError: On HTTP failure, timeout or malformed body
        """
        url, payload = self._build_request(
            prompt,
            system,
            self.config.temperature if temperature is None else temperature,
            max_tokens or self.config.max_tokens,
        )

        async def _do_complete() -> str:
            session = self._get_session()
            async with session.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            ) as response:
                if response.status >= 400:
                    detail = await response.text()
                    raise LLMError(
                        f"Completion endpoint returned {response.status}",
                        context={"service": "llm", "status": response.status, "detail": masker.mask(detail[:200])},
                    )
                body = await response.json()
                return self._extract_text(self.config.dialect, body)

        try:
            return await retry_with_policy(
                _do_complete,
                self.retry,
                retry_on=(aiohttp.ClientError, LLMError),
                logger=logger,
            )
        except LLMError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("LLM call failed", url=masker.mask(url), error=masker.mask(str(e)))
            raise LLMError(
                "Failed to get a completion",
                code="LLM_NO_RESPONSE",
                context={"service": "llm", "url": masker.mask(url)},
                cause=e,
            )

    async def close(self) -> None:
        """Close HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
