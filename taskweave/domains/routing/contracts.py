"""
Routing Contracts - Interfaces for the routing domain.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from .models import RouteResult, RoutingPreferences, StreamChunk


@runtime_checkable
class TaskRouter(Protocol):
    """Contract for task-to-model routing, as consumed by flows."""

    def candidates_for(self, task: str) -> list[str]:
        """Ranked candidate model ids for a task, primary first."""
        ...

    def select_best_model(
        self,
        task: str,
        preferences: RoutingPreferences | None = None,
    ) -> str:
        """
        Pick the model that serves a task.

        Args:
            task: Abstract task name, e.g. "architecture-planning"
            preferences: Cost/speed preferences

        Returns:
            Model id from the task's candidate list
        """
        ...

    async def route(
        self,
        task: str,
        prompt: str,
        preferences: RoutingPreferences | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> RouteResult:
        """Select a model and dispatch the prompt to it."""
        ...

    def route_stream(
        self,
        task: str,
        prompt: str,
        preferences: RoutingPreferences | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Select a model and stream its response."""
        ...


@runtime_checkable
class UsageSink(Protocol):
    """Reporting sink for completed model calls."""

    async def track(
        self,
        model: str,
        task: str,
        tokens_in: int,
        tokens_out: int,
        duration_ms: float,
        **kwargs: Any,
    ) -> Any:
        """Record one call. Never influences routing."""
        ...
