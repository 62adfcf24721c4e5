"""
Health Routes - Liveness and provider readiness.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from taskweave import __version__
from taskweave.domains.routing import ModelRouter
from taskweave.interfaces.api.deps import get_router

router = APIRouter()


@router.get("/health")
async def health_check(model_router: ModelRouter = Depends(get_router)) -> dict[str, Any]:
    """
    Report readiness.

    The service is up either way; it is "degraded" when no provider is
    configured, since every routed call would fail.
    """
    available = model_router.available_models()
    return {
        "status": "healthy" if available else "degraded",
        "service": "taskweave",
        "available_models": len(available),
    }


@router.get("/api")
async def api_info() -> dict[str, Any]:
    return {
        "name": "TaskWeave API",
        "version": __version__,
        "description": "Multi-model task routing and agent pipeline orchestration",
        "docs": "/docs",
        "streams": ["/api/generate/stream", "/api/content/create/stream"],
    }
