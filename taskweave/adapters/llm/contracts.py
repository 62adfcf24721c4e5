"""
Gateway Contracts - The single boundary all model calls pass through.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class LLMResponse:
    """Response from a provider generation call."""

    text: str
    model: str
    provider: str
    tokens_in: int | None = None
    tokens_out: int | None = None

    @property
    def tokens_used(self) -> int | None:
        """Total tokens, when the provider reported usage."""
        if self.tokens_in is None and self.tokens_out is None:
            return None
        return (self.tokens_in or 0) + (self.tokens_out or 0)


@runtime_checkable
class ProviderGateway(Protocol):
    """Contract for a provider binding used by the model router."""

    async def generate(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> LLMResponse:
        """
        Generate a complete response.

        Args:
            model_id: Provider-side model name
            prompt: Full prompt text
            cancel: Cancellation signal; implementations may ignore it

        Returns:
            LLMResponse with generated text and token usage when known
        """
        ...

    def generate_stream(
        self,
        model_id: str,
        prompt: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a response as text fragments.

        The iterator is finite and cannot be restarted.
        """
        ...
