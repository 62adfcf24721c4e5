"""
Shared fixtures for flow tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from taskweave.domains.routing import DEFAULT_CATALOG, RouteResult, RoutingPreferences, StreamChunk


class ScriptedRouter:
    """
    TaskRouter double with canned replies per task.

    A reply may be a string, an exception to raise, or a callable that
    receives the prompt and returns either.
    """

    def __init__(
        self,
        replies: dict[str, Any] | None = None,
        *,
        default: str = "{}",
        selected: dict[str, str] | None = None,
    ) -> None:
        self.replies = dict(replies or {})
        self.default = default
        self.selected = dict(selected or {})
        self.calls: list[tuple[str, str]] = []
        self.cancels: list[asyncio.Event | None] = []

    def tasks(self) -> list[str]:
        return [task for task, _ in self.calls]

    def prompts_for(self, task: str) -> list[str]:
        return [prompt for t, prompt in self.calls if t == task]

    def candidates_for(self, task: str) -> list[str]:
        return DEFAULT_CATALOG.mapping_for(task).candidates

    def select_best_model(self, task: str, preferences: RoutingPreferences | None = None) -> str:
        return self.selected.get(task, self.candidates_for(task)[0])

    def _reply(self, task: str, prompt: str) -> str:
        self.calls.append((task, prompt))
        reply: Any = self.replies.get(task, self.default)
        if callable(reply):
            reply = reply(prompt)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def route(
        self,
        task: str,
        prompt: str,
        preferences: RoutingPreferences | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> RouteResult:
        self.cancels.append(cancel)
        text = self._reply(task, prompt)
        model_id = self.select_best_model(task, preferences)
        return RouteResult(
            model_id=model_id,
            provider=DEFAULT_CATALOG.models[model_id].provider,
            task=task,
            response=text,
            tokens_in=100,
            tokens_out=100,
            tokens_used=200,
            cost=0.01,
        )

    async def route_stream(
        self,
        task: str,
        prompt: str,
        preferences: RoutingPreferences | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamChunk]:
        self.cancels.append(cancel)
        text = self._reply(task, prompt)
        model_id = self.select_best_model(task, preferences)
        for word in text.split(" "):
            yield StreamChunk(chunk=word + " ", model_id=model_id)


@pytest.fixture
def make_router() -> Callable[..., ScriptedRouter]:
    """Factory for ScriptedRouter instances."""
    return ScriptedRouter
