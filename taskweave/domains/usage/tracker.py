"""
Usage Tracker - Token, cost and latency reporting for model calls.

A pure reporting sink: nothing here influences routing or scheduling.
History is kept in memory and bounded by max_records.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from taskweave.domains.routing.models import ModelCatalog
from taskweave.domains.routing.registry import DEFAULT_CATALOG

from .models import (
    CostShare,
    DayUsage,
    ModelUsage,
    PerformanceMetrics,
    TaskUsage,
    UsageRecord,
    UsageSummary,
)

logger = logging.getLogger(__name__)

__all__ = ["UsageTracker"]

RecordCallback = Callable[[UsageRecord], Awaitable[None]]
PersistCallback = Callable[[list[UsageRecord]], Awaitable[None]]


def _percentile(sorted_values: list[float], fraction: float) -> float:
    if not sorted_values:
        return 0.0
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[index]


class UsageTracker:
    """
    In-memory usage tracker.

    Example:
        tracker = UsageTracker(max_records=1000)
        await tracker.track("claude-sonnet-4", "api-generation", 1200, 800, 3400.0)
        print(tracker.summary().total_cost)
    """

    def __init__(
        self,
        catalog: ModelCatalog = DEFAULT_CATALOG,
        max_records: int = 10000,
        on_record: RecordCallback | None = None,
        on_persist: PersistCallback | None = None,
    ) -> None:
        """
        Initialize tracker.

        Args:
            catalog: Model catalog used for pricing and provider lookup
            max_records: Oldest records are dropped beyond this size
            on_record: Awaited with each new record
            on_persist: Awaited with all records by persist()
        """
        self._catalog = catalog
        self._max_records = max_records
        self._on_record = on_record
        self._on_persist = on_persist
        self._records: list[UsageRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def _trim(self) -> None:
        if len(self._records) > self._max_records:
            self._records = self._records[-self._max_records:]

    async def track(
        self,
        model: str,
        task: str,
        tokens_in: int,
        tokens_out: int,
        duration_ms: float,
        user_id: str | None = None,
        project_id: str | None = None,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> UsageRecord:
        """Record one model call and return the stored record."""
        descriptor = self._catalog.get_model(model)
        record = UsageRecord(
            model=model,
            provider=descriptor.provider.value if descriptor else "unknown",
            task=task,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            total_tokens=tokens_in + tokens_out,
            cost=self.estimate_cost(model, tokens_in, tokens_out),
            duration_ms=duration_ms,
            user_id=user_id,
            project_id=project_id,
            session_id=session_id,
            metadata=metadata or {},
        )
        self._records.append(record)
        self._trim()

        if self._on_record is not None:
            await self._on_record(record)

        logger.debug(
            "Tracked %s/%s: %d tokens, $%.5f", model, task, record.total_tokens, record.cost
        )
        return record

    def estimate_cost(self, model: str, tokens_in: int, tokens_out: int) -> float:
        """USD cost of a hypothetical call; 0 for models outside the catalog."""
        descriptor = self._catalog.get_model(model)
        if descriptor is None:
            return 0.0
        return (tokens_in + tokens_out) / 1000 * descriptor.cost_per_1k_tokens

    def _filter(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
        model: str | None = None,
        task: str | None = None,
    ) -> list[UsageRecord]:
        records = self._records
        if since is not None:
            records = [r for r in records if r.timestamp >= since]
        if until is not None:
            records = [r for r in records if r.timestamp <= until]
        if user_id is not None:
            records = [r for r in records if r.user_id == user_id]
        if project_id is not None:
            records = [r for r in records if r.project_id == project_id]
        if model is not None:
            records = [r for r in records if r.model == model]
        if task is not None:
            records = [r for r in records if r.task == task]
        return list(records)

    def summary(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
    ) -> UsageSummary:
        """Totals, averages and per-model/task/day breakdowns."""
        records = self._filter(since=since, until=until, user_id=user_id, project_id=project_id)
        if not records:
            return UsageSummary()

        by_model: dict[str, ModelUsage] = {}
        by_task: dict[str, TaskUsage] = {}
        by_day: dict[str, DayUsage] = {}
        model_latency: dict[str, float] = defaultdict(float)
        task_latency: dict[str, float] = defaultdict(float)
        task_models: dict[str, Counter[str]] = defaultdict(Counter)

        for record in records:
            usage = by_model.setdefault(
                record.model, ModelUsage(model=record.model, provider=record.provider)
            )
            usage.requests += 1
            usage.tokens += record.total_tokens
            usage.cost += record.cost
            model_latency[record.model] += record.duration_ms

            task_usage = by_task.setdefault(record.task, TaskUsage(task=record.task))
            task_usage.requests += 1
            task_usage.tokens += record.total_tokens
            task_usage.cost += record.cost
            task_latency[record.task] += record.duration_ms
            task_models[record.task][record.model] += 1

            day_key = record.timestamp.date().isoformat()
            day = by_day.setdefault(day_key, DayUsage(date=day_key))
            day.requests += 1
            day.tokens += record.total_tokens
            day.cost += record.cost

        for model_id, usage in by_model.items():
            usage.avg_latency_ms = model_latency[model_id] / usage.requests
        for task_name, task_usage in by_task.items():
            task_usage.avg_latency_ms = task_latency[task_name] / task_usage.requests
            task_usage.top_models = [m for m, _ in task_models[task_name].most_common(3)]

        count = len(records)
        total_tokens = sum(r.total_tokens for r in records)
        total_cost = sum(r.cost for r in records)
        total_duration = sum(r.duration_ms for r in records)

        return UsageSummary(
            total_records=count,
            total_tokens=total_tokens,
            total_cost=total_cost,
            total_duration_ms=total_duration,
            avg_tokens_per_request=total_tokens / count,
            avg_cost_per_request=total_cost / count,
            avg_latency_ms=total_duration / count,
            by_model=by_model,
            by_task=by_task,
            by_day=by_day,
            period_start=since or records[0].timestamp,
            period_end=until or records[-1].timestamp,
        )

    def records(
        self,
        limit: int = 100,
        offset: int = 0,
        model: str | None = None,
        task: str | None = None,
        user_id: str | None = None,
        since: datetime | None = None,
    ) -> list[UsageRecord]:
        """Filtered records, most recent first."""
        records = self._filter(since=since, user_id=user_id, model=model, task=task)
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[offset:offset + limit]

    def cost_breakdown(self, since: datetime | None = None) -> dict[str, CostShare]:
        """Spend per model with its share of the total."""
        summary = self.summary(since=since)
        return {
            model_id: CostShare(
                cost=usage.cost,
                percentage=(usage.cost / summary.total_cost * 100) if summary.total_cost > 0 else 0.0,
            )
            for model_id, usage in summary.by_model.items()
        }

    def performance_metrics(self) -> dict[str, PerformanceMetrics]:
        """Latency percentiles and request rate per model."""
        grouped: dict[str, list[UsageRecord]] = defaultdict(list)
        for record in self._records:
            grouped[record.model].append(record)

        metrics = {}
        for model_id, records in grouped.items():
            latencies = sorted(r.duration_ms for r in records)
            span_ms = 60_000.0
            if len(records) > 1:
                span_ms = (records[-1].timestamp - records[0].timestamp).total_seconds() * 1000
            # Records logged within the same millisecond would divide by zero
            span_ms = max(span_ms, 1.0)

            metrics[model_id] = PerformanceMetrics(
                avg_latency_ms=sum(latencies) / len(latencies),
                p50_latency_ms=_percentile(latencies, 0.5),
                p95_latency_ms=_percentile(latencies, 0.95),
                p99_latency_ms=_percentile(latencies, 0.99),
                requests_per_minute=len(records) / span_ms * 60_000,
            )
        return metrics

    def daily_trend(self, days: int = 30) -> list[DayUsage]:
        """Per-day usage for the last ``days`` days, oldest first."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        summary = self.summary(since=since)
        return sorted(summary.by_day.values(), key=lambda d: d.date)

    def export(self) -> list[UsageRecord]:
        return list(self._records)

    def import_records(self, records: Iterable[UsageRecord | dict[str, Any]]) -> int:
        """Append records (model instances or dicts); returns how many were added."""
        imported = [
            r if isinstance(r, UsageRecord) else UsageRecord.model_validate(r) for r in records
        ]
        self._records.extend(imported)
        self._trim()
        return len(imported)

    def clear(self) -> None:
        self._records = []

    async def persist(self) -> None:
        """Hand all records to the persist callback, if configured."""
        if self._on_persist is not None and self._records:
            await self._on_persist(list(self._records))
