"""
Usage Domain - Token, cost and latency reporting.

Usage:
    from taskweave.domains.usage import UsageTracker

    tracker = UsageTracker()
    router = ModelRouter.from_settings(settings, usage_sink=tracker)
"""

from .models import (
    CostShare,
    DayUsage,
    ModelUsage,
    PerformanceMetrics,
    TaskUsage,
    UsageRecord,
    UsageSummary,
)
from .tracker import UsageTracker

__all__ = [
    "UsageRecord",
    "ModelUsage",
    "TaskUsage",
    "DayUsage",
    "UsageSummary",
    "CostShare",
    "PerformanceMetrics",
    "UsageTracker",
]
