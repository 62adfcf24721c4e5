"""
Pipeline Contracts - Interfaces for the pipeline domain.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from .events import AgentEvent
from .models import PipelineContext, PipelineResult


@runtime_checkable
class StepOperation(Protocol):
    """Body of a step: receives the pipeline input and its StepContext."""

    async def __call__(self, pipeline_input: Any, ctx: Any) -> Any:
        ...


@runtime_checkable
class StepCondition(Protocol):
    """Skip predicate; returning False marks the step skipped."""

    def __call__(self, context: PipelineContext) -> bool:
        ...


@runtime_checkable
class EventStream(Protocol):
    """
    Single-consumer event stream of one run.

    Iterate once for events; ``result`` is set when iteration ends.
    """

    def __aiter__(self) -> AsyncIterator[AgentEvent]:
        ...

    @property
    def result(self) -> Any:
        ...

    async def collect(self) -> Any:
        """Drain all events and return the result."""
        ...


@runtime_checkable
class StepExecutor(Protocol):
    """Contract for a dependency-graph executor."""

    def execute(self, pipeline_input: Any = None, *, pipeline_id: str | None = None) -> EventStream:
        ...

    async def run(self, pipeline_input: Any = None, *, pipeline_id: str | None = None) -> PipelineResult:
        ...
