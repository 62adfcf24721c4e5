"""
Agent Events - Lifecycle notifications emitted by pipeline runs.

Events are transient: produced by a run, handed to its single observer and
never stored as primary state.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

__all__ = ["AgentEventKind", "AgentEvent", "TERMINAL_KINDS"]


class AgentEventKind(str, Enum):
    """Kinds of agent events."""

    START = "start"
    PROGRESS = "progress"
    TOKEN_CHUNK = "token-chunk"
    COMPLETE = "complete"
    ERROR = "error"
    SKIPPED = "skipped"
    MODEL_SWITCH = "model-switch"
    COLLABORATION = "collaboration"
    FILE_GENERATED = "file-generated"


# Exactly one of these closes each step's event sequence
TERMINAL_KINDS = frozenset(
    {AgentEventKind.COMPLETE, AgentEventKind.ERROR, AgentEventKind.SKIPPED}
)


class AgentEvent(BaseModel):
    """A timestamped notification about one step of a pipeline run."""

    kind: AgentEventKind
    pipeline_id: str
    step_id: str
    agent_id: str
    agent_name: str
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Kind-specific payload
    message: str | None = None
    progress: float | None = Field(default=None, ge=0, le=100)
    chunk: str | None = None
    output: Any = None
    file_path: str | None = None
    file_content: str | None = None
    target_agent: str | None = None
    model: str | None = None
    error: str | None = None
    duration_ms: float | None = None
    warning: bool = False

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    def for_agent(self, agent_id: str, agent_name: str, **updates: Any) -> AgentEvent:
        """Copy of this event attributed to another agent identity."""
        return self.model_copy(update={"agent_id": agent_id, "agent_name": agent_name, **updates})

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict with the envelope and the non-empty payload fields."""
        data = self.model_dump(mode="json", exclude_none=True)
        if not self.warning:
            data.pop("warning", None)
        return data
