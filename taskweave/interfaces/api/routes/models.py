"""
Model Routes - Catalog inspection and direct task routing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from taskweave.config.errors import NoAvailableModelError
from taskweave.domains.routing import ModelRouter, RouteResult, RoutingPreferences
from taskweave.interfaces.api.deps import get_router, get_routing_preferences

router = APIRouter()


class ModelInfo(BaseModel):
    """Catalog entry with availability."""

    id: str
    provider: str
    available: bool
    modality: str
    cost_per_1k_tokens: float
    max_tokens: int
    supports_streaming: bool
    capabilities: list[str]


class TaskInfo(BaseModel):
    """Task mapping with the model currently selected for it."""

    task: str
    primary: str
    fallbacks: list[str]
    selected: str | None
    rationale: str


class RouteRequest(BaseModel):
    """Direct routing request body."""

    task: str = Field(..., min_length=1, description="Abstract task name")
    prompt: str = Field(..., min_length=1)
    prefer_cost: bool | None = None
    prefer_speed: bool | None = None


@router.get("/models", response_model=list[ModelInfo])
async def list_models(model_router: ModelRouter = Depends(get_router)):
    """List catalog models and whether each is available."""
    return [
        ModelInfo(
            id=descriptor.id,
            provider=descriptor.provider.value,
            available=model_router.is_available(descriptor.id),
            modality=descriptor.modality.value,
            cost_per_1k_tokens=descriptor.cost_per_1k_tokens,
            max_tokens=descriptor.max_tokens,
            supports_streaming=descriptor.supports_streaming,
            capabilities=sorted(descriptor.capabilities),
        )
        for descriptor in model_router.catalog.models.values()
    ]


@router.get("/tasks", response_model=list[TaskInfo])
async def list_tasks(
    model_router: ModelRouter = Depends(get_router),
    preferences: RoutingPreferences = Depends(get_routing_preferences),
):
    """List task mappings with the current selection for each."""
    tasks = []
    for task, mapping in model_router.catalog.tasks.items():
        try:
            selected = model_router.select_best_model(task, preferences)
        except NoAvailableModelError:
            selected = None
        tasks.append(
            TaskInfo(
                task=task,
                primary=mapping.primary,
                fallbacks=list(mapping.fallbacks),
                selected=selected,
                rationale=mapping.rationale,
            )
        )
    return tasks


@router.post("/route", response_model=RouteResult)
async def route_prompt(
    request: RouteRequest,
    model_router: ModelRouter = Depends(get_router),
    defaults: RoutingPreferences = Depends(get_routing_preferences),
):
    """Route a prompt to the best available model for a task."""
    preferences = RoutingPreferences(
        prefer_cost=defaults.prefer_cost if request.prefer_cost is None else request.prefer_cost,
        prefer_speed=defaults.prefer_speed if request.prefer_speed is None else request.prefer_speed,
    )
    return await model_router.route(request.task, request.prompt, preferences)
