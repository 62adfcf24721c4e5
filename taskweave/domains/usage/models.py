"""
Usage Models - Data types for usage reporting.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

__all__ = [
    "UsageRecord",
    "ModelUsage",
    "TaskUsage",
    "DayUsage",
    "UsageSummary",
    "CostShare",
    "PerformanceMetrics",
]


class UsageRecord(BaseModel):
    """One completed model call."""

    id: str = Field(default_factory=lambda: f"usage-{uuid.uuid4().hex[:12]}")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model: str
    provider: str = "unknown"
    task: str
    tokens_in: int = Field(default=0, ge=0)
    tokens_out: int = Field(default=0, ge=0)
    total_tokens: int = 0
    cost: float = 0.0  # USD
    duration_ms: float = 0.0
    user_id: str | None = None
    project_id: str | None = None
    session_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ModelUsage(BaseModel):
    """Aggregate usage for one model."""

    model: str
    provider: str
    requests: int = 0
    tokens: int = 0
    cost: float = 0.0
    avg_latency_ms: float = 0.0


class TaskUsage(BaseModel):
    """Aggregate usage for one task."""

    task: str
    requests: int = 0
    tokens: int = 0
    cost: float = 0.0
    avg_latency_ms: float = 0.0
    top_models: list[str] = Field(default_factory=list)


class DayUsage(BaseModel):
    """Aggregate usage for one UTC day."""

    date: str  # YYYY-MM-DD
    requests: int = 0
    tokens: int = 0
    cost: float = 0.0


class UsageSummary(BaseModel):
    """Totals, averages and breakdowns over a set of records."""

    total_records: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    total_duration_ms: float = 0.0
    avg_tokens_per_request: float = 0.0
    avg_cost_per_request: float = 0.0
    avg_latency_ms: float = 0.0
    by_model: dict[str, ModelUsage] = Field(default_factory=dict)
    by_task: dict[str, TaskUsage] = Field(default_factory=dict)
    by_day: dict[str, DayUsage] = Field(default_factory=dict)
    period_start: datetime | None = None
    period_end: datetime | None = None


class CostShare(BaseModel):
    """A model's share of total spend."""

    cost: float
    percentage: float


class PerformanceMetrics(BaseModel):
    """Latency distribution and throughput for one model."""

    avg_latency_ms: float
    p50_latency_ms: float
    p95_latency_ms: float
    p99_latency_ms: float
    requests_per_minute: float
