"""
Usage Routes - Token, cost and latency reporting.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from taskweave.domains.usage import (
    CostShare,
    DayUsage,
    PerformanceMetrics,
    UsageRecord,
    UsageSummary,
    UsageTracker,
)
from taskweave.interfaces.api.deps import get_usage_tracker

router = APIRouter()


@router.get("/summary", response_model=UsageSummary)
async def usage_summary(
    since: datetime | None = None,
    until: datetime | None = None,
    user_id: str | None = None,
    project_id: str | None = None,
    tracker: UsageTracker = Depends(get_usage_tracker),
):
    """Totals and breakdowns for the selected period."""
    return tracker.summary(since=since, until=until, user_id=user_id, project_id=project_id)


@router.get("/records", response_model=list[UsageRecord])
async def usage_records(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    model: str | None = None,
    task: str | None = None,
    tracker: UsageTracker = Depends(get_usage_tracker),
):
    """Recorded calls, most recent first."""
    return tracker.records(limit=limit, offset=offset, model=model, task=task)


@router.get("/costs", response_model=dict[str, CostShare])
async def usage_costs(
    since: datetime | None = None,
    tracker: UsageTracker = Depends(get_usage_tracker),
):
    """Spend per model."""
    return tracker.cost_breakdown(since=since)


@router.get("/performance", response_model=dict[str, PerformanceMetrics])
async def usage_performance(tracker: UsageTracker = Depends(get_usage_tracker)):
    """Latency percentiles per model."""
    return tracker.performance_metrics()


@router.get("/trend", response_model=list[DayUsage])
async def usage_trend(
    days: int = Query(default=30, ge=1, le=365),
    tracker: UsageTracker = Depends(get_usage_tracker),
):
    """Daily usage, oldest first."""
    return tracker.daily_trend(days=days)
