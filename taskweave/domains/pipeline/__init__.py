"""
Pipeline Domain - Dependency-graph step scheduling with streaming events.

Usage:
    from taskweave.domains.pipeline import PipelineScheduler, Step

    scheduler = PipelineScheduler([
        Step(id="write", operation=write),
        Step(id="review", dependencies=("write",), operation=review),
    ])
    run = scheduler.execute(spec)
    async for event in run:
        print(event.kind, event.step_id)
    print(run.result.success)
"""

from .contracts import EventStream, StepCondition, StepExecutor, StepOperation
from .events import TERMINAL_KINDS, AgentEvent, AgentEventKind
from .models import (
    OutputWarning,
    PipelineContext,
    PipelineMetadata,
    PipelineResult,
    Step,
    StepRecord,
    StepStatus,
)
from .scheduler import PipelineRun, PipelineScheduler, StepContext

__all__ = [
    # Contracts
    "StepOperation",
    "StepCondition",
    "EventStream",
    "StepExecutor",
    # Events
    "AgentEvent",
    "AgentEventKind",
    "TERMINAL_KINDS",
    # Models
    "Step",
    "StepStatus",
    "StepRecord",
    "OutputWarning",
    "PipelineMetadata",
    "PipelineContext",
    "PipelineResult",
    # Implementation
    "PipelineScheduler",
    "PipelineRun",
    "StepContext",
]
