"""
Generation Routes - Multi-agent app generation, blocking or streamed.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from taskweave.domains.flows import AppGenerationFlow, GenerationResult, ProjectConfig
from taskweave.domains.routing import ModelRouter, RoutingPreferences
from taskweave.interfaces.api.deps import get_router, get_routing_preferences
from taskweave.interfaces.api.streaming import flow_response

router = APIRouter()


class GenerateRequest(BaseModel):
    """App generation request body."""

    prompt: str = Field(..., min_length=1, description="What to build")
    config: ProjectConfig
    enable_parallel: bool = True


def _flow(request: GenerateRequest, model_router: ModelRouter, preferences: RoutingPreferences):
    return AppGenerationFlow(
        model_router, enable_parallel=request.enable_parallel, preferences=preferences
    )


@router.post("", response_model=GenerationResult)
async def generate_app(
    request: GenerateRequest,
    model_router: ModelRouter = Depends(get_router),
    preferences: RoutingPreferences = Depends(get_routing_preferences),
):
    """Generate a project and return all files once the run finishes."""
    run = _flow(request, model_router, preferences).generate(request.prompt, request.config)
    return await run.collect()


@router.post("/stream")
async def generate_app_stream(
    request: GenerateRequest,
    model_router: ModelRouter = Depends(get_router),
    preferences: RoutingPreferences = Depends(get_routing_preferences),
):
    """
    Generate a project as a server-sent event stream.

    One ``data:`` frame per agent event, then an ``event: result`` frame
    with the GenerationResult.
    """
    run = _flow(request, model_router, preferences).generate(request.prompt, request.config)
    return flow_response(run)
