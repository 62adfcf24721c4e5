"""
Pipeline Models - Data types for the pipeline scheduler.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

__all__ = [
    "StepStatus",
    "Step",
    "OutputWarning",
    "PipelineMetadata",
    "PipelineContext",
    "StepRecord",
    "PipelineResult",
]


class StepStatus(str, Enum):
    """Step lifecycle. Transitions are monotonic."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETE, StepStatus.FAILED, StepStatus.SKIPPED)

    @property
    def satisfies_dependents(self) -> bool:
        return self in (StepStatus.COMPLETE, StepStatus.SKIPPED)


class Step(BaseModel):
    """
    A named unit of work in a pipeline.

    Definitions are immutable and may be reused across runs; only the
    per-run state changes.
    """

    id: str = Field(..., min_length=1)
    name: str = ""
    dependencies: tuple[str, ...] = ()
    operation: Callable[[Any, Any], Awaitable[Any]]  # (pipeline_input, StepContext) -> output
    condition: Callable[[Any], bool] | None = None  # PipelineContext -> False skips the step

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def display_name(self) -> str:
        return self.name or self.id


class OutputWarning(BaseModel):
    """A step degraded to a default output instead of failing."""

    step_id: str
    message: str
    code: str = "AGENT_MALFORMED_OUTPUT"


class PipelineMetadata(BaseModel):
    """Accumulated bookkeeping for one run."""

    pipeline_id: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    models_used: list[str] = Field(default_factory=list)
    step_durations: dict[str, float] = Field(default_factory=dict)
    completed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[OutputWarning] = Field(default_factory=list)


class PipelineContext:
    """
    Shared state of one pipeline run.

    Outputs are append-only: each key is written once, by the step owning
    that id, so concurrently running steps never target the same key.
    """

    def __init__(self, inputs: Any, pipeline_id: str) -> None:
        self.inputs = inputs
        self.outputs: dict[str, Any] = {}
        self.metadata = PipelineMetadata(pipeline_id=pipeline_id)
        self.cancel_event = asyncio.Event()

    @property
    def pipeline_id(self) -> str:
        return self.metadata.pipeline_id

    def get(self, step_id: str, default: Any = None) -> Any:
        """Output of a step, or default when it has not completed."""
        return self.outputs.get(step_id, default)

    def record_output(self, step_id: str, output: Any) -> None:
        if step_id in self.outputs:
            raise RuntimeError(f"Output for step '{step_id}' already written")
        self.outputs[step_id] = output

    def record_model(self, model_id: str) -> None:
        self.metadata.models_used.append(model_id)


class StepRecord(BaseModel):
    """Per-step summary in a pipeline result."""

    id: str
    name: str
    status: StepStatus
    duration_ms: float | None = None
    error: str | None = None


class PipelineResult(BaseModel):
    """Final outcome of a pipeline run, produced once at completion or abort."""

    success: bool
    pipeline_id: str
    outputs: dict[str, Any] = Field(default_factory=dict)
    steps: list[StepRecord] = Field(default_factory=list)
    models_used: list[str] = Field(default_factory=list)
    total_duration_ms: float = 0.0
    error: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[OutputWarning] = Field(default_factory=list)

    def step(self, step_id: str) -> StepRecord | None:
        return next((s for s in self.steps if s.id == step_id), None)
