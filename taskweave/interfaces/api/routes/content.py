"""
Content Routes - Content creation, optimization and analysis.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from taskweave.domains.flows import (
    AnalysisOutput,
    ContentManagementFlow,
    ContentOptions,
    ContentOutput,
    ContentSpec,
    OptimizationOutput,
)
from taskweave.interfaces.api.deps import get_content_flow
from taskweave.interfaces.api.streaming import flow_response

router = APIRouter()


class CreateContentRequest(BaseModel):
    """Content creation request body."""

    spec: ContentSpec
    options: ContentOptions | None = None


class ContentTextRequest(BaseModel):
    """Request body carrying existing content."""

    content: str = Field(..., min_length=1)
    options: ContentOptions | None = None


@router.post("/create", response_model=ContentOutput)
async def create_content(
    request: CreateContentRequest,
    flow: ContentManagementFlow = Depends(get_content_flow),
):
    """Write content and run the configured analyses."""
    return await flow.create_content(request.spec, request.options).collect()


@router.post("/create/stream")
async def create_content_stream(
    request: CreateContentRequest,
    flow: ContentManagementFlow = Depends(get_content_flow),
):
    """Write content as a server-sent event stream."""
    return flow_response(flow.create_content(request.spec, request.options))


@router.post("/optimize", response_model=OptimizationOutput)
async def optimize_content(
    request: ContentTextRequest,
    flow: ContentManagementFlow = Depends(get_content_flow),
):
    """Improve existing content and produce SEO metadata."""
    return await flow.optimize_content(request.content, request.options).collect()


@router.post("/analyze", response_model=AnalysisOutput)
async def analyze_content(
    request: ContentTextRequest,
    flow: ContentManagementFlow = Depends(get_content_flow),
):
    """Run every analysis over existing content."""
    return await flow.analyze(request.content)
