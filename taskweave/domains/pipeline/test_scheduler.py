"""
Tests for the pipeline scheduler.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

import pytest

from taskweave.config import ErrorCode, PipelineDeadlockError, TaskWeaveError

from .events import TERMINAL_KINDS, AgentEvent, AgentEventKind
from .models import Step, StepStatus
from .scheduler import PipelineScheduler, StepContext


def _returns(value: Any, delay: float = 0.0):
    async def operation(pipeline_input: Any, ctx: StepContext) -> Any:
        if delay:
            await asyncio.sleep(delay)
        return value

    return operation


def _raises(message: str):
    async def operation(pipeline_input: Any, ctx: StepContext) -> Any:
        raise ValueError(message)

    return operation


def _diamond(b_operation=None, c_operation=None, d_operation=None) -> PipelineScheduler:
    """A -> (B, C) -> D."""
    return PipelineScheduler(
        [
            Step(id="a", name="A", operation=_returns("a-out")),
            Step(id="b", name="B", dependencies=("a",), operation=b_operation or _returns("b-out")),
            Step(id="c", name="C", dependencies=("a",), operation=c_operation or _returns("c-out")),
            Step(id="d", name="D", dependencies=("b", "c"), operation=d_operation or _returns("d-out")),
        ],
        name="diamond",
    )


async def _collect(scheduler: PipelineScheduler, pipeline_input: Any = None):
    run = scheduler.execute(pipeline_input)
    events = [event async for event in run]
    return run.result, events


def _by_step(events: list[AgentEvent]) -> dict[str, list[AgentEventKind]]:
    grouped: dict[str, list[AgentEventKind]] = defaultdict(list)
    for event in events:
        grouped[event.step_id].append(event.kind)
    return grouped


# --- Success Path Tests ---


async def test_dependency_ordering() -> None:
    """Test D starts only after B and C complete."""
    result, events = await _collect(_diamond())

    assert result.success is True
    assert result.error is None
    assert result.outputs == {"a": "a-out", "b": "b-out", "c": "c-out", "d": "d-out"}

    position = {(e.step_id, e.kind): i for i, e in enumerate(events)}
    d_start = position[("d", AgentEventKind.START)]
    assert d_start > position[("b", AgentEventKind.COMPLETE)]
    assert d_start > position[("c", AgentEventKind.COMPLETE)]
    assert position[("b", AgentEventKind.START)] > position[("a", AgentEventKind.COMPLETE)]


async def test_independent_steps_run_concurrently() -> None:
    """Test B and C are both running before either finishes."""
    b_started = asyncio.Event()
    c_started = asyncio.Event()

    def waits_for(own: asyncio.Event, other: asyncio.Event, value: str):
        async def operation(pipeline_input: Any, ctx: StepContext) -> str:
            own.set()
            await asyncio.wait_for(other.wait(), timeout=1.0)
            return value

        return operation

    result, _ = await _collect(
        _diamond(
            b_operation=waits_for(b_started, c_started, "b-out"),
            c_operation=waits_for(c_started, b_started, "c-out"),
        )
    )
    assert result.success is True


async def test_operation_receives_input_and_prior_outputs() -> None:
    """Test steps see the pipeline input and completed dependency outputs."""
    seen: dict[str, Any] = {}

    async def second(pipeline_input: Any, ctx: StepContext) -> str:
        seen["input"] = pipeline_input
        seen["first"] = ctx.outputs["first"]
        seen["inputs"] = ctx.inputs
        return "done"

    scheduler = PipelineScheduler(
        [
            Step(id="first", operation=_returns(42)),
            Step(id="second", dependencies=("first",), operation=second),
        ]
    )
    result = await scheduler.run({"prompt": "hi"})

    assert result.success is True
    assert seen == {"input": {"prompt": "hi"}, "first": 42, "inputs": {"prompt": "hi"}}


async def test_step_outputs_view_is_read_only() -> None:
    """Test a step cannot write another step's output."""

    async def meddle(pipeline_input: Any, ctx: StepContext) -> None:
        ctx.outputs["other"] = "x"  # type: ignore[index]

    result = await PipelineScheduler([Step(id="meddle", operation=meddle)]).run()
    assert result.success is False
    assert "meddle" in (result.error or "")


async def test_empty_pipeline_succeeds() -> None:
    """Test a pipeline with no steps finishes immediately."""
    result, events = await _collect(PipelineScheduler())
    assert result.success is True
    assert events == []


async def test_scheduler_is_reentrant() -> None:
    """Test concurrent runs of one scheduler keep separate contexts."""

    async def echo(pipeline_input: Any, ctx: StepContext) -> Any:
        await asyncio.sleep(0.01)
        return pipeline_input

    scheduler = PipelineScheduler([Step(id="echo", operation=echo)])
    first, second = await asyncio.gather(scheduler.run("one"), scheduler.run("two"))

    assert first.outputs == {"echo": "one"}
    assert second.outputs == {"echo": "two"}
    assert first.pipeline_id != second.pipeline_id


# --- Failure Tests ---


async def test_failure_aborts_and_drains_siblings() -> None:
    """Test B failing stops D while C drains and keeps its output."""
    d_calls = 0

    async def d_operation(pipeline_input: Any, ctx: StepContext) -> str:
        nonlocal d_calls
        d_calls += 1
        return "d-out"

    result, events = await _collect(
        _diamond(
            b_operation=_raises("backend exploded"),
            c_operation=_returns("c-out", delay=0.02),
            d_operation=d_operation,
        )
    )

    assert result.success is False
    assert d_calls == 0
    assert result.outputs == {"a": "a-out", "c": "c-out"}
    assert result.error == "Step 'b' failed: backend exploded"
    assert result.step("b").status == StepStatus.FAILED
    assert result.step("c").status == StepStatus.COMPLETE
    assert result.step("d").status == StepStatus.PENDING
    assert "d" not in _by_step(events)

    error_event = next(e for e in events if e.kind == AgentEventKind.ERROR)
    assert error_event.step_id == "b"
    assert error_event.error == "backend exploded"


async def test_all_failures_are_reported() -> None:
    """Test concurrent failures are all listed, the first one as error."""

    async def slow_fail(pipeline_input: Any, ctx: StepContext) -> None:
        await asyncio.sleep(0.01)
        raise RuntimeError("second")

    result = await _diamond(b_operation=_raises("first"), c_operation=slow_fail).run()

    assert result.error == "Step 'b' failed: first"
    assert result.errors == ["Step 'b' failed: first", "Step 'c' failed: second"]


async def test_condition_error_fails_step() -> None:
    """Test a raising skip-condition counts as a step failure."""

    def broken(context: Any) -> bool:
        raise KeyError("score")

    scheduler = PipelineScheduler([Step(id="seo", operation=_returns("x"), condition=broken)])
    result, events = await _collect(scheduler)

    assert result.success is False
    assert [e.kind for e in events] == [AgentEventKind.START, AgentEventKind.ERROR]


async def test_cancelled_step_fails_instead_of_deadlocking() -> None:
    """Test a step whose operation is cancelled is recorded as failed."""

    async def cancelled(pipeline_input: Any, ctx: StepContext) -> None:
        raise asyncio.CancelledError()

    scheduler = PipelineScheduler(
        [
            Step(id="a", operation=_returns(1)),
            Step(id="b", dependencies=("a",), operation=cancelled),
            Step(id="c", dependencies=("b",), operation=_returns(3)),
        ]
    )
    result, events = await _collect(scheduler)

    assert result.success is False
    assert result.error == "Step 'b' failed: CancelledError"
    assert result.step("a").status == StepStatus.COMPLETE
    assert result.step("b").status == StepStatus.FAILED
    assert result.step("b").error == "CancelledError"
    assert result.step("c").status == StepStatus.PENDING
    assert _by_step(events)["b"] == [AgentEventKind.START, AgentEventKind.ERROR]


# --- Skip Tests ---


async def test_skip_condition_does_not_run_operation() -> None:
    """Test a skipped step emits skipped and still satisfies dependents."""
    seo_calls = 0

    async def review(pipeline_input: Any, ctx: StepContext) -> dict:
        return {"overall_score": 50}

    async def seo(pipeline_input: Any, ctx: StepContext) -> str:
        nonlocal seo_calls
        seo_calls += 1
        return "seo"

    scheduler = PipelineScheduler(
        [
            Step(id="review", operation=review),
            Step(
                id="seo",
                dependencies=("review",),
                operation=seo,
                condition=lambda context: context.get("review")["overall_score"] >= 70,
            ),
            Step(id="publish", dependencies=("seo",), operation=_returns("published")),
        ]
    )
    result, events = await _collect(scheduler)

    assert seo_calls == 0
    assert result.success is True
    assert result.step("seo").status == StepStatus.SKIPPED
    assert result.outputs["publish"] == "published"
    assert "seo" not in result.outputs
    assert _by_step(events)["seo"] == [AgentEventKind.START, AgentEventKind.SKIPPED]


async def test_skip_condition_passes() -> None:
    """Test the operation runs when the condition holds."""
    scheduler = PipelineScheduler(
        [Step(id="seo", operation=_returns("seo"), condition=lambda context: True)]
    )
    result = await scheduler.run()
    assert result.outputs == {"seo": "seo"}


# --- Deadlock Tests ---


async def test_cycle_raises_deadlock() -> None:
    """Test X <-> Y terminates with a deadlock fault."""
    scheduler = PipelineScheduler(
        [
            Step(id="x", dependencies=("y",), operation=_returns("x")),
            Step(id="y", dependencies=("x",), operation=_returns("y")),
        ]
    )
    run = scheduler.execute()

    with pytest.raises(PipelineDeadlockError) as exc_info:
        async for _ in run:
            pass

    assert exc_info.value.code == ErrorCode.PIPELINE_DEADLOCK
    assert set(exc_info.value.details["pending"]) == {"x", "y"}
    assert run.result.success is False


async def test_dangling_dependency_deadlocks_after_progress() -> None:
    """Test a reference to a missing step deadlocks once other work is done."""
    scheduler = PipelineScheduler(
        [
            Step(id="ok", operation=_returns("fine")),
            Step(id="orphan", dependencies=("ghost",), operation=_returns("never")),
        ]
    )
    with pytest.raises(PipelineDeadlockError):
        await scheduler.run()


def test_validate_reports_problems() -> None:
    """Test static validation finds unknown dependencies and cycles."""
    scheduler = PipelineScheduler(
        [
            Step(id="x", dependencies=("y",), operation=_returns("x")),
            Step(id="y", dependencies=("x",), operation=_returns("y")),
            Step(id="z", dependencies=("ghost",), operation=_returns("z")),
        ]
    )
    problems = scheduler.validate()

    assert "Step 'z' depends on unknown step 'ghost'" in problems
    assert any(p.startswith("Dependency cycle: x -> y -> x") for p in problems)
    assert _diamond().validate() == []


def test_duplicate_step_id_rejected() -> None:
    """Test step ids are unique within a pipeline."""
    scheduler = PipelineScheduler([Step(id="a", operation=_returns(1))])
    with pytest.raises(TaskWeaveError) as exc_info:
        scheduler.add_step(Step(id="a", operation=_returns(2)))
    assert exc_info.value.code == ErrorCode.PIPELINE_INVALID_STEP


# --- Event Tests ---


async def test_each_step_events_start_and_end_once() -> None:
    """Test every step sequence begins with start and ends in one terminal event."""

    async def chatty(pipeline_input: Any, ctx: StepContext) -> str:
        ctx.progress("Thinking", 10)
        ctx.token_chunk("par")
        ctx.token_chunk("tial")
        ctx.file_generated("src/app.ts", "export {}")
        await asyncio.sleep(0)
        ctx.progress("Almost", 90)
        return "done"

    scheduler = PipelineScheduler(
        [
            Step(id="a", operation=chatty),
            Step(id="b", dependencies=("a",), operation=chatty),
            Step(id="c", dependencies=("a",), operation=_raises("nope")),
            Step(id="d", dependencies=("a",), operation=chatty, condition=lambda c: False),
        ]
    )
    _, events = await _collect(scheduler)

    for step_id, kinds in _by_step(events).items():
        assert kinds[0] == AgentEventKind.START, step_id
        assert kinds[-1] in TERMINAL_KINDS, step_id
        assert sum(kind in TERMINAL_KINDS for kind in kinds) == 1, step_id


async def test_events_carry_envelope() -> None:
    """Test events carry pipeline, step and agent identity."""
    run = PipelineScheduler([Step(id="a", name="Architect", operation=_returns(1))]).execute(
        pipeline_id="run-1"
    )
    events = [event async for event in run]

    assert {e.pipeline_id for e in events} == {"run-1"}
    assert {e.agent_id for e in events} == {"a"}
    assert {e.agent_name for e in events} == {"Architect"}
    complete = events[-1]
    assert complete.kind == AgentEventKind.COMPLETE
    assert complete.output == 1
    assert complete.duration_ms is not None


async def test_run_is_single_consumer() -> None:
    """Test a run cannot be iterated twice."""
    run = PipelineScheduler([Step(id="a", operation=_returns(1))]).execute()
    await run.collect()
    with pytest.raises(RuntimeError):
        run.__aiter__()


async def test_result_before_iteration_raises() -> None:
    """Test the result is unavailable until the run finishes."""
    run = PipelineScheduler().execute()
    with pytest.raises(RuntimeError):
        _ = run.result


# --- Context Helper Tests ---


async def test_models_used_are_ordered_and_deduplicated() -> None:
    """Test recorded models keep first-use order."""

    def uses(*models: str):
        async def operation(pipeline_input: Any, ctx: StepContext) -> None:
            for model in models:
                ctx.record_model(model)

        return operation

    scheduler = PipelineScheduler(
        [
            Step(id="a", operation=uses("claude-opus-4", "gpt-4o")),
            Step(id="b", dependencies=("a",), operation=uses("gpt-4o", "claude-sonnet-4")),
        ]
    )
    result = await scheduler.run()
    assert result.models_used == ["claude-opus-4", "gpt-4o", "claude-sonnet-4"]


async def test_warn_records_warning_and_flags_event() -> None:
    """Test degraded outputs surface as inspectable warnings."""

    async def degraded(pipeline_input: Any, ctx: StepContext) -> dict:
        ctx.warn("Review output was not valid JSON; using defaults")
        return {}

    run = PipelineScheduler([Step(id="review", operation=degraded)]).execute()
    events = [event async for event in run]

    assert run.result.success is True
    assert run.result.warnings[0].step_id == "review"
    assert run.result.warnings[0].code == "AGENT_MALFORMED_OUTPUT"
    flagged = [e for e in events if e.warning]
    assert len(flagged) == 1
    assert flagged[0].kind == AgentEventKind.PROGRESS


async def test_model_switch_records_model() -> None:
    """Test model-switch events also record the model."""

    async def switching(pipeline_input: Any, ctx: StepContext) -> None:
        ctx.model_switch("gpt-4-turbo", "Primary unavailable")

    run = PipelineScheduler([Step(id="a", operation=switching)]).execute()
    events = [event async for event in run]

    assert run.result.models_used == ["gpt-4-turbo"]
    switch = next(e for e in events if e.kind == AgentEventKind.MODEL_SWITCH)
    assert switch.model == "gpt-4-turbo"


# --- Abandonment Tests ---


async def test_abandoned_run_sets_cancel_event() -> None:
    """Test an observer leaving early signals in-flight steps without killing them."""
    release = asyncio.Event()
    finished = asyncio.Event()
    seen_cancel: list[bool] = []

    async def slow(pipeline_input: Any, ctx: StepContext) -> str:
        await release.wait()
        seen_cancel.append(ctx.cancelled)
        finished.set()
        return "late"

    run = PipelineScheduler([Step(id="slow", operation=slow)]).execute()
    events = run.__aiter__()
    first = await events.__anext__()
    assert first.kind == AgentEventKind.START

    await events.aclose()

    assert run.context.cancel_event.is_set()
    assert run.result.success is False
    assert run.result.error == "Pipeline run abandoned by observer"

    release.set()
    await asyncio.wait_for(finished.wait(), timeout=1.0)
    # The in-flight call completed rather than being preempted
    assert seen_cancel == [True]


async def test_aclose_after_break_records_abandonment() -> None:
    """Test breaking out of async for and closing the run records abandonment at once."""
    release = asyncio.Event()

    async def slow(pipeline_input: Any, ctx: StepContext) -> str:
        await release.wait()
        return "late"

    run = PipelineScheduler([Step(id="slow", operation=slow)]).execute()
    async for event in run:
        assert event.kind == AgentEventKind.START
        break

    assert not run.done
    await run.aclose()

    assert run.done
    assert run.context.cancel_event.is_set()
    assert run.result.error == "Pipeline run abandoned by observer"
    release.set()


async def test_aclose_before_iteration_is_noop() -> None:
    run = PipelineScheduler([Step(id="a", operation=_returns(1))]).execute()
    await run.aclose()

    assert not run.done
    assert (await run.collect()).success is True
