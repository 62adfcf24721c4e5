"""
Flow Base - Shared plumbing for agent-driven flows.

Agents are thin wrappers over the router: build a prompt, route it,
parse the reply. FlowRun adapts a pipeline run for observers by
attributing each step's events to the agent that owns the step.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskweave.config.errors import MalformedAgentOutputError
from taskweave.domains.pipeline.events import AgentEvent
from taskweave.domains.pipeline.models import OutputWarning, PipelineResult, StepRecord
from taskweave.domains.routing.models import RouteResult, RoutingPreferences

from .parsing import parse_agent_json

if TYPE_CHECKING:
    from taskweave.domains.pipeline.scheduler import PipelineRun, StepContext
    from taskweave.domains.routing.contracts import TaskRouter

logger = logging.getLogger(__name__)

__all__ = ["AgentIdentity", "AgentPayload", "AgentOutput", "FlowResult", "Agent", "FlowRun"]

T = TypeVar("T")
R = TypeVar("R")
F = TypeVar("F", bound="FlowResult")


class AgentIdentity(BaseModel):
    """Observer-facing identity of the agent that owns a step."""

    id: str
    name: str

    model_config = {"frozen": True}


class AgentPayload(BaseModel):
    """Structured reply fragment; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AgentOutput(AgentPayload):
    """Top-level agent reply; routing fields are filled in after parsing."""

    model: str | None = None
    tokens_used: int | None = None
    cost: float | None = None


class FlowResult(BaseModel):
    """Run bookkeeping shared by every flow result."""

    success: bool
    pipeline_id: str
    models_used: list[str] = Field(default_factory=list)
    steps: list[StepRecord] = Field(default_factory=list)
    total_duration_ms: float = 0.0
    error: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[OutputWarning] = Field(default_factory=list)

    @classmethod
    def from_pipeline(cls: type[F], result: PipelineResult, **fields: Any) -> F:
        """Build a flow result carrying the pipeline result's bookkeeping."""
        return cls(
            success=result.success,
            pipeline_id=result.pipeline_id,
            models_used=result.models_used,
            steps=result.steps,
            total_duration_ms=result.total_duration_ms,
            error=result.error,
            errors=result.errors,
            warnings=result.warnings,
            **fields,
        )


class Agent:
    """
    Base agent.

    Subclasses set ``identity`` and build task prompts; every model call
    goes through ``_route`` so cancellation and model bookkeeping reach
    the pipeline.
    """

    identity: AgentIdentity

    def __init__(
        self,
        router: TaskRouter,
        preferences: RoutingPreferences | None = None,
    ) -> None:
        self._router = router
        self._preferences = preferences

    @property
    def agent_id(self) -> str:
        return self.identity.id

    @property
    def agent_name(self) -> str:
        return self.identity.name

    async def _route(self, task: str, prompt: str, ctx: StepContext | None) -> RouteResult:
        result = await self._router.route(
            task,
            prompt,
            self._preferences,
            cancel=ctx.cancel_event if ctx is not None else None,
        )
        if ctx is not None:
            self._note_model(task, result.model_id, ctx)
        return result

    async def _stream(self, task: str, prompt: str, ctx: StepContext | None) -> tuple[str, str]:
        """Stream a reply as token events; returns (model id, full text)."""
        chunks: list[str] = []
        model_id = ""
        async for chunk in self._router.route_stream(
            task,
            prompt,
            self._preferences,
            cancel=ctx.cancel_event if ctx is not None else None,
        ):
            if not model_id:
                model_id = chunk.model_id
                if ctx is not None:
                    self._note_model(task, model_id, ctx)
            chunks.append(chunk.chunk)
            if ctx is not None:
                ctx.token_chunk(chunk.chunk, chunk.model_id)

        return model_id, "".join(chunks)

    def _note_model(self, task: str, model_id: str, ctx: StepContext) -> None:
        candidates = self._router.candidates_for(task)
        if candidates and model_id != candidates[0]:
            ctx.model_switch(model_id, f"{task}: using {model_id} instead of {candidates[0]}")
        else:
            ctx.record_model(model_id)

    def _parse(
        self,
        result: RouteResult,
        schema: Any,
        default: T,
        ctx: StepContext | None,
        what: str,
    ) -> T:
        """
        Parse a reply, degrading to ``default`` on malformed output.

        The degradation is logged and, inside a pipeline, recorded as a
        step warning so the result still shows it.
        """
        try:
            parsed = parse_agent_json(result.response, schema)
        except MalformedAgentOutputError as e:
            logger.warning("%s returned malformed %s: %s", self.agent_name, what, e.message)
            if ctx is not None:
                ctx.warn(f"{self.agent_name} returned malformed {what}; using defaults")
            parsed = default

        if isinstance(parsed, AgentOutput):
            parsed = parsed.model_copy(
                update={
                    "model": result.model_id,
                    "tokens_used": result.tokens_used,
                    "cost": result.cost,
                }
            )
        return parsed


class FlowRun(Generic[R]):
    """
    Observer view of a flow's pipeline run.

    Iterate once for agent-attributed events; ``result`` holds the flow's
    own result type once iteration has ended. Observers that break out
    early should ``await run.aclose()`` so the abandonment is recorded
    immediately.
    """

    def __init__(
        self,
        run: PipelineRun,
        agents: Mapping[str, AgentIdentity],
        build: Callable[[PipelineResult], R],
    ) -> None:
        self._run = run
        self._agents = dict(agents)
        self._build = build
        self._result: R | None = None
        self._iterator: AsyncGenerator[AgentEvent, None] | None = None

    @property
    def pipeline_id(self) -> str:
        return self._run.pipeline_id

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> R:
        if self._result is None:
            raise RuntimeError("Flow run has not finished")
        return self._result

    @property
    def pipeline_result(self) -> PipelineResult:
        return self._run.result

    def __aiter__(self) -> AsyncIterator[AgentEvent]:
        self._iterator = self._events(self._run.__aiter__())
        return self._iterator

    async def aclose(self) -> None:
        if self._iterator is not None:
            await self._iterator.aclose()

    def cancel(self) -> None:
        self._run.cancel()

    async def collect(self) -> R:
        """Drain all events and return the flow result."""
        async for _ in self:
            pass
        return self.result

    def translate(self, event: AgentEvent) -> AgentEvent:
        identity = self._agents.get(event.step_id)
        if identity is None:
            return event
        return event.for_agent(identity.id, identity.name)

    async def _events(self, events: AsyncGenerator[AgentEvent, None]) -> AsyncIterator[AgentEvent]:
        try:
            async for event in events:
                yield self.translate(event)
        finally:
            # Closing the inner generator lets the run record abandonment
            await events.aclose()
            if self._run.done:
                self._result = self._build(self._run.result)
