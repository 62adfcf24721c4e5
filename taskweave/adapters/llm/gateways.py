"""
Provider Gateways - HTTP bindings for each model provider.

This is the ONLY place that talks to provider APIs. The router treats every
provider uniformly through the ProviderGateway contract.

Supports:
- Anthropic Messages API
- OpenAI Chat Completions (plus DALL-E image generation)
- Google Gemini generateContent
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from taskweave.config import ErrorCode, LLMError

from .contracts import LLMResponse, ProviderGateway

if TYPE_CHECKING:
    from taskweave.config import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "HTTPGateway",
    "AnthropicGateway",
    "OpenAIGateway",
    "GoogleGateway",
    "build_gateways",
]

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
IMAGE_MODELS = frozenset({"dall-e-3"})


def _is_transient(exc: BaseException) -> bool:
    """Rate limits, server errors and transport failures are retried."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, LLMError):
        return exc.code in (ErrorCode.LLM_RATE_LIMITED, ErrorCode.LLM_UNAVAILABLE)
    return False


class HTTPGateway:
    """
    Shared HTTP plumbing for provider gateways.

    Subclasses build request payloads and parse provider responses; this
    class owns the client, status mapping and retries.
    """

    provider = "unknown"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 120.0,
        max_output_tokens: int = 8192,
        max_retries: int = 3,
        backoff: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize gateway.

        Args:
            api_key: Provider credential
            base_url: Provider API root
            timeout: Request timeout in seconds
            max_output_tokens: Completion token limit sent with each request
            max_retries: Attempts for transient failures
            backoff: Exponential backoff multiplier in seconds
            client: Optional shared client (tests inject a mock transport)
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_output_tokens = max_output_tokens
        self._max_retries = max(1, max_retries)
        self._backoff = backoff
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_json(
        self,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST with retries on transient failures."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._backoff, max=30),
            reraise=True,
        ):
            with attempt:
                response = await self._get_client().post(url, json=body, headers=headers)
                self._raise_for_status(response)
                data: dict[str, Any] = response.json()
                return data
        raise LLMError(f"{self.provider} request was not attempted")  # pragma: no cover

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map provider HTTP status codes to LLMError codes."""
        status = response.status_code
        if status < 400:
            return

        details = {"provider": self.provider, "status": status}
        if status == 429:
            raise LLMError(f"{self.provider} rate limit exceeded", details, ErrorCode.LLM_RATE_LIMITED)
        if status in (401, 403):
            raise LLMError(f"{self.provider} rejected credentials", details, ErrorCode.LLM_AUTH_FAILED)
        if status >= 500:
            raise LLMError(f"{self.provider} server error: {status}", details)

        logger.error("%s error: %s %s", self.provider, status, response.text[:500])
        raise LLMError(f"{self.provider} API error: {status}", details, ErrorCode.LLM_INVALID_RESPONSE)

    async def _stream_sse(
        self,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded JSON payloads from a server-sent event stream."""
        async with self._get_client().stream("POST", url, json=body, headers=headers) as response:
            if response.status_code >= 400:
                await response.aread()
                self._raise_for_status(response)

            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                payload = line[len("data:"):].strip()
                if not payload or payload == "[DONE]":
                    continue
                try:
                    yield json.loads(payload)
                except json.JSONDecodeError:
                    logger.debug("%s: skipping undecodable stream line", self.provider)


class AnthropicGateway(HTTPGateway):
    """Anthropic Messages API binding."""

    provider = "anthropic"
    api_version = "2023-06-01"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }

    def _body(self, model_id: str, prompt: str, stream: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "max_tokens": self._max_output_tokens,
            "system": DEFAULT_SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        if stream:
            body["stream"] = True
        return body

    async def generate(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> LLMResponse:
        """Generate using the Messages API. `cancel` is accepted but not honored."""
        data = await self._post_json(
            f"{self._base_url}/v1/messages",
            self._body(model_id, prompt),
            self._headers(),
        )

        blocks = data.get("content", [])
        if not blocks or blocks[0].get("type") != "text":
            raise LLMError(
                "Unexpected Anthropic response type",
                {"provider": self.provider},
                ErrorCode.LLM_INVALID_RESPONSE,
            )

        usage = data.get("usage", {})
        return LLMResponse(
            text=blocks[0].get("text", ""),
            model=model_id,
            provider=self.provider,
            tokens_in=usage.get("input_tokens"),
            tokens_out=usage.get("output_tokens"),
        )

    async def generate_stream(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """Stream text deltas."""
        async for event in self._stream_sse(
            f"{self._base_url}/v1/messages",
            self._body(model_id, prompt, stream=True),
            self._headers(),
        ):
            delta = event.get("delta", {})
            if event.get("type") == "content_block_delta" and delta.get("type") == "text_delta":
                yield delta.get("text", "")


class OpenAIGateway(HTTPGateway):
    """OpenAI Chat Completions binding, with DALL-E for image models."""

    provider = "openai"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _body(self, model_id: str, prompt: str, stream: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "messages": [
                {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_completion_tokens": self._max_output_tokens,
        }
        if stream:
            body["stream"] = True
        return body

    async def generate(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> LLMResponse:
        """Generate a chat completion, or an image URL for image models."""
        if model_id in IMAGE_MODELS:
            return await self._generate_image(model_id, prompt)

        data = await self._post_json(
            f"{self._base_url}/v1/chat/completions",
            self._body(model_id, prompt),
            self._headers(),
        )

        text = ""
        choices = data.get("choices", [])
        if choices:
            text = choices[0].get("message", {}).get("content") or ""

        usage = data.get("usage", {})
        return LLMResponse(
            text=text,
            model=model_id,
            provider=self.provider,
            tokens_in=usage.get("prompt_tokens"),
            tokens_out=usage.get("completion_tokens"),
        )

    async def _generate_image(self, model_id: str, prompt: str) -> LLMResponse:
        """Generate one image and return its URL as the response text."""
        data = await self._post_json(
            f"{self._base_url}/v1/images/generations",
            {
                "model": model_id,
                "prompt": prompt,
                "n": 1,
                "size": "1024x1024",
                "quality": "standard",
                "response_format": "url",
            },
            self._headers(),
        )
        images = data.get("data") or [{}]
        return LLMResponse(text=images[0].get("url", ""), model=model_id, provider=self.provider)

    async def generate_stream(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """Stream completion deltas."""
        async for event in self._stream_sse(
            f"{self._base_url}/v1/chat/completions",
            self._body(model_id, prompt, stream=True),
            self._headers(),
        ):
            choices = event.get("choices") or [{}]
            content = choices[0].get("delta", {}).get("content")
            if content:
                yield content


class GoogleGateway(HTTPGateway):
    """Google Gemini generateContent binding."""

    provider = "google"

    def _body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": self._max_output_tokens},
        }

    @staticmethod
    def _candidate_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates", [])
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)

    async def generate(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> LLMResponse:
        """Generate using generateContent."""
        data = await self._post_json(
            f"{self._base_url}/v1beta/models/{model_id}:generateContent?key={self._api_key}",
            self._body(prompt),
        )

        usage = data.get("usageMetadata", {})
        return LLMResponse(
            text=self._candidate_text(data),
            model=model_id,
            provider=self.provider,
            tokens_in=usage.get("promptTokenCount"),
            tokens_out=usage.get("candidatesTokenCount"),
        )

    async def generate_stream(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """Stream using streamGenerateContent in SSE mode."""
        async for event in self._stream_sse(
            f"{self._base_url}/v1beta/models/{model_id}:streamGenerateContent"
            f"?alt=sse&key={self._api_key}",
            self._body(prompt),
        ):
            text = self._candidate_text(event)
            if text:
                yield text


GATEWAY_CLASSES: dict[str, type[HTTPGateway]] = {
    "anthropic": AnthropicGateway,
    "openai": OpenAIGateway,
    "google": GoogleGateway,
}


def build_gateways(settings: Settings) -> dict[str, ProviderGateway]:
    """
    Build gateway bindings for every provider with a configured credential.

    Image-only providers (stability, ideogram) have no binding here, so their
    models never become available to the router.
    """
    base_urls = {
        "anthropic": settings.anthropic_base_url,
        "openai": settings.openai_base_url,
        "google": settings.google_base_url,
    }

    gateways: dict[str, ProviderGateway] = {}
    for provider, api_key in settings.provider_credentials().items():
        gateway_cls = GATEWAY_CLASSES.get(provider)
        if not api_key or gateway_cls is None:
            continue
        gateways[provider] = gateway_cls(
            api_key=api_key,
            base_url=base_urls[provider],
            timeout=settings.llm_timeout_seconds,
            max_output_tokens=settings.llm_max_output_tokens,
            max_retries=settings.llm_max_retries,
        )
        logger.debug("Gateway bound: %s", provider)

    return gateways
