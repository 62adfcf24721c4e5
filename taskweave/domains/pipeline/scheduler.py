"""
Pipeline Scheduler - Dependency-graph step executor with streaming events.

Runs registered steps in dependency order, starting every eligible step
concurrently as an asyncio task. A step is eligible once each dependency
is complete or skipped. The first failure aborts the run: nothing new is
started, running siblings drain and keep their outputs.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncGenerator, AsyncIterator, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from taskweave.config.errors import (
    ErrorCode,
    PipelineDeadlockError,
    StepFailureError,
    TaskWeaveError,
)

from .events import AgentEvent, AgentEventKind
from .models import (
    OutputWarning,
    PipelineContext,
    PipelineMetadata,
    PipelineResult,
    Step,
    StepRecord,
    StepStatus,
)

logger = logging.getLogger(__name__)

__all__ = ["PipelineScheduler", "PipelineRun", "StepContext"]


class _StepDone:
    """Queue marker: a step task has finished and its events are flushed."""

    __slots__ = ("step_id",)

    def __init__(self, step_id: str) -> None:
        self.step_id = step_id


class StepContext:
    """
    What a step operation sees of its run.

    Read access to inputs and completed outputs, plus helpers that emit
    events on behalf of the step. Everything a step emits goes through the
    run's single queue, so each step's events stay totally ordered.
    """

    def __init__(self, run: PipelineRun, step: Step) -> None:
        self._run = run
        self._step = step

    @property
    def step_id(self) -> str:
        return self._step.id

    @property
    def step_name(self) -> str:
        return self._step.display_name

    @property
    def pipeline_id(self) -> str:
        return self._run.pipeline_id

    @property
    def inputs(self) -> Any:
        return self._run.context.inputs

    @property
    def outputs(self) -> Mapping[str, Any]:
        return MappingProxyType(self._run.context.outputs)

    @property
    def metadata(self) -> PipelineMetadata:
        return self._run.context.metadata

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._run.context.cancel_event

    @property
    def cancelled(self) -> bool:
        return self._run.context.cancel_event.is_set()

    def emit(self, kind: AgentEventKind, **fields: Any) -> None:
        self._run._emit(self._step, kind, **fields)

    def progress(self, message: str, progress: float | None = None) -> None:
        self.emit(AgentEventKind.PROGRESS, message=message, progress=progress)

    def token_chunk(self, chunk: str, model: str | None = None) -> None:
        self.emit(AgentEventKind.TOKEN_CHUNK, chunk=chunk, model=model)

    def file_generated(self, path: str, content: str) -> None:
        self.emit(
            AgentEventKind.FILE_GENERATED,
            message=f"Generated {path}",
            file_path=path,
            file_content=content,
        )

    def collaboration(self, target_agent: str, message: str) -> None:
        self.emit(AgentEventKind.COLLABORATION, target_agent=target_agent, message=message)

    def model_switch(self, model: str, message: str | None = None) -> None:
        self.record_model(model)
        self.emit(AgentEventKind.MODEL_SWITCH, model=model, message=message or f"Using {model}")

    def record_model(self, model_id: str) -> None:
        self._run.context.record_model(model_id)

    def warn(self, message: str) -> None:
        """Record a degraded-output warning and surface it as a flagged progress event."""
        self._run.context.metadata.warnings.append(
            OutputWarning(step_id=self._step.id, message=message)
        )
        self.emit(AgentEventKind.PROGRESS, message=message, warning=True)


class PipelineRun:
    """
    One execution of a step graph.

    Async-iterate it exactly once to receive AgentEvents; the
    PipelineResult is available from ``result`` once iteration ends.
    If the observer stops early, the run sets its cancel event and leaves
    in-flight steps to finish on their own. Abandonment is recorded when
    the event iterator is closed: call ``aclose()`` after breaking out of
    ``async for``, otherwise it waits for the event loop to finalize the
    iterator.
    """

    def __init__(
        self,
        steps: Iterable[Step],
        pipeline_input: Any,
        pipeline_id: str | None = None,
        name: str = "pipeline",
    ) -> None:
        self.name = name
        self.pipeline_id = pipeline_id or str(uuid.uuid4())
        self.context = PipelineContext(pipeline_input, self.pipeline_id)
        self._steps = list(steps)
        self._states = {step.id: StepStatus.PENDING for step in self._steps}
        self._records: dict[str, StepRecord] = {}
        self._failures: list[StepFailureError] = []
        self._tasks: dict[str, asyncio.Task] = {}
        self._queue: asyncio.Queue[AgentEvent | _StepDone] = asyncio.Queue()
        self._started = False
        self._iterator: AsyncGenerator[AgentEvent, None] | None = None
        self._result: PipelineResult | None = None
        self._start_time = 0.0

    def __aiter__(self) -> AsyncIterator[AgentEvent]:
        if self._started:
            raise RuntimeError("A pipeline run can only be consumed once")
        self._started = True
        self._iterator = self._events()
        return self._iterator

    async def aclose(self) -> None:
        """Stop observing; records abandonment if the run has not finished."""
        if self._iterator is not None:
            await self._iterator.aclose()

    @property
    def result(self) -> PipelineResult:
        if self._result is None:
            raise RuntimeError("Pipeline run has not finished")
        return self._result

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def states(self) -> Mapping[str, StepStatus]:
        return MappingProxyType(self._states)

    @property
    def aborted(self) -> bool:
        return bool(self._failures)

    async def collect(self) -> PipelineResult:
        """Drain all events and return the result."""
        async for _ in self:
            pass
        return self.result

    def cancel(self) -> None:
        """Signal in-flight steps that the observer has gone away."""
        self.context.cancel_event.set()

    async def _events(self) -> AsyncIterator[AgentEvent]:
        self._start_time = time.time()
        logger.info(
            "Pipeline %s (%s) started with %d steps",
            self.name,
            self.pipeline_id[:8],
            len(self._steps),
        )
        finished = False
        try:
            while True:
                if not self.aborted:
                    self._schedule()

                if not self._tasks and self._queue.empty():
                    if all(state.is_terminal for state in self._states.values()) or self.aborted:
                        finished = True
                        break
                    self._deadlock()

                item = await self._queue.get()
                if isinstance(item, _StepDone):
                    self._tasks.pop(item.step_id, None)
                    continue
                yield item
        finally:
            if not finished and self._tasks:
                self.cancel()
                logger.warning(
                    "Pipeline %s (%s) abandoned with %d step(s) in flight: %s",
                    self.name,
                    self.pipeline_id[:8],
                    len(self._tasks),
                    ", ".join(self._tasks),
                )
            if not finished and self._result is None:
                self._result = self._build_result(error="Pipeline run abandoned by observer")

        self._result = self._build_result()
        logger.info(
            "Pipeline %s (%s) finished: success=%s in %.0fms",
            self.name,
            self.pipeline_id[:8],
            self._result.success,
            self._result.total_duration_ms,
        )

    def _schedule(self) -> None:
        """Start every eligible step; loop because skips can unblock others."""
        changed = True
        while changed and not self.aborted:
            changed = False
            for step in self._steps:
                if self._states[step.id] is not StepStatus.PENDING:
                    continue
                if not all(
                    dep in self._states and self._states[dep].satisfies_dependents
                    for dep in step.dependencies
                ):
                    continue

                self._emit(step, AgentEventKind.START, message=f"Starting {step.display_name}")
                try:
                    should_run = step.condition is None or step.condition(self.context)
                except Exception as exc:
                    self._fail(step, exc, 0.0)
                    changed = True
                    break

                if not should_run:
                    self._states[step.id] = StepStatus.SKIPPED
                    self.context.metadata.skipped.append(step.id)
                    self._records[step.id] = StepRecord(
                        id=step.id, name=step.display_name, status=StepStatus.SKIPPED
                    )
                    self._emit(step, AgentEventKind.SKIPPED, message="Condition not met")
                    logger.info("Step %s skipped by condition", step.id)
                    changed = True
                    continue

                self._states[step.id] = StepStatus.RUNNING
                self._tasks[step.id] = asyncio.create_task(
                    self._run_step(step), name=f"{self.name}:{step.id}"
                )

    async def _run_step(self, step: Step) -> None:
        step_ctx = StepContext(self, step)
        start = time.time()
        try:
            output = await step.operation(self.context.inputs, step_ctx)
        except asyncio.CancelledError as exc:
            self._fail(step, exc, (time.time() - start) * 1000)
            raise
        except Exception as exc:
            self._fail(step, exc, (time.time() - start) * 1000)
        else:
            duration_ms = (time.time() - start) * 1000
            self.context.record_output(step.id, output)
            self._states[step.id] = StepStatus.COMPLETE
            self.context.metadata.completed.append(step.id)
            self.context.metadata.step_durations[step.id] = duration_ms
            self._records[step.id] = StepRecord(
                id=step.id,
                name=step.display_name,
                status=StepStatus.COMPLETE,
                duration_ms=duration_ms,
            )
            self._emit(
                step,
                AgentEventKind.COMPLETE,
                message=f"{step.display_name} complete",
                output=output,
                duration_ms=duration_ms,
            )
        finally:
            self._queue.put_nowait(_StepDone(step.id))

    def _fail(self, step: Step, exc: BaseException, duration_ms: float) -> None:
        failure = StepFailureError(step.id, exc)
        reason = str(exc) or type(exc).__name__
        self._failures.append(failure)
        self._states[step.id] = StepStatus.FAILED
        self.context.metadata.failed.append(step.id)
        self.context.metadata.errors.append(failure.message)
        self.context.metadata.step_durations[step.id] = duration_ms
        self._records[step.id] = StepRecord(
            id=step.id,
            name=step.display_name,
            status=StepStatus.FAILED,
            duration_ms=duration_ms,
            error=reason,
        )
        logger.error("Step %s failed in pipeline %s: %s", step.id, self.pipeline_id[:8], reason)
        self._emit(step, AgentEventKind.ERROR, error=reason, duration_ms=duration_ms)

    def _deadlock(self) -> None:
        pending = [step_id for step_id, state in self._states.items() if state is StepStatus.PENDING]
        message = f"No eligible step; unsatisfiable dependencies for: {', '.join(pending)}"
        logger.error("Pipeline %s (%s) deadlocked: %s", self.name, self.pipeline_id[:8], message)
        self._result = self._build_result(error=message)
        raise PipelineDeadlockError(message, {"pending": pending})

    def _emit(self, step: Step, kind: AgentEventKind, **fields: Any) -> None:
        self._queue.put_nowait(
            AgentEvent(
                kind=kind,
                pipeline_id=self.pipeline_id,
                step_id=step.id,
                agent_id=step.id,
                agent_name=step.display_name,
                **fields,
            )
        )

    def _build_result(self, error: str | None = None) -> PipelineResult:
        metadata = self.context.metadata
        errors = list(metadata.errors)
        if error is not None:
            errors.append(error)
        first_error = self._failures[0].message if self._failures else error

        records = [
            self._records.get(step.id)
            or StepRecord(id=step.id, name=step.display_name, status=self._states[step.id])
            for step in self._steps
        ]
        return PipelineResult(
            success=first_error is None
            and all(state.is_terminal for state in self._states.values()),
            pipeline_id=self.pipeline_id,
            outputs=dict(self.context.outputs),
            steps=records,
            models_used=list(dict.fromkeys(metadata.models_used)),
            total_duration_ms=(time.time() - self._start_time) * 1000,
            error=first_error,
            errors=errors,
            warnings=list(metadata.warnings),
        )


class PipelineScheduler:
    """
    Generic dependency-graph executor.

    Step definitions are registered once and reused; every ``execute``
    call owns a fresh context and state map.
    """

    def __init__(self, steps: Iterable[Step] | None = None, *, name: str | None = None) -> None:
        self.name = name or "pipeline"
        self._steps: dict[str, Step] = {}
        if steps:
            self.add_steps(steps)

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps.values())

    def add_step(self, step: Step) -> PipelineScheduler:
        """Register a step. Ids must be unique within the pipeline."""
        if step.id in self._steps:
            raise TaskWeaveError(
                ErrorCode.PIPELINE_INVALID_STEP,
                f"Duplicate step id: {step.id}",
                {"step_id": step.id},
            )
        self._steps[step.id] = step
        return self

    def add_steps(self, steps: Iterable[Step]) -> PipelineScheduler:
        for step in steps:
            self.add_step(step)
        return self

    def validate(self) -> list[str]:
        """
        Static graph check.

        Returns:
            Problems found (unknown dependencies, cycles); empty when valid
        """
        problems = []
        for step in self._steps.values():
            for dep in step.dependencies:
                if dep not in self._steps:
                    problems.append(f"Step '{step.id}' depends on unknown step '{dep}'")

        visiting: set[str] = set()
        visited: set[str] = set()

        def visit(step_id: str, path: list[str]) -> None:
            if step_id in visiting:
                cycle = path[path.index(step_id):] + [step_id]
                problems.append(f"Dependency cycle: {' -> '.join(cycle)}")
                return
            if step_id in visited or step_id not in self._steps:
                return
            visiting.add(step_id)
            for dep in self._steps[step_id].dependencies:
                visit(dep, [*path, step_id])
            visiting.discard(step_id)
            visited.add(step_id)

        for step_id in self._steps:
            visit(step_id, [])
        return problems

    def execute(self, pipeline_input: Any = None, *, pipeline_id: str | None = None) -> PipelineRun:
        """
        Start a run.

        Args:
            pipeline_input: Value handed to every step operation
            pipeline_id: Optional id; generated when omitted

        Returns:
            PipelineRun to iterate for events
        """
        return PipelineRun(self._steps.values(), pipeline_input, pipeline_id, self.name)

    async def run(self, pipeline_input: Any = None, *, pipeline_id: str | None = None) -> PipelineResult:
        """Execute and drain events, returning only the result."""
        return await self.execute(pipeline_input, pipeline_id=pipeline_id).collect()
