"""
API Dependencies - Dependency injection for FastAPI routes.

Provides singleton router, gateways and usage tracker; flows are cheap
and built per request from them.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from taskweave.adapters.llm import HTTPGateway, ProviderGateway, build_gateways
from taskweave.config import get_settings
from taskweave.domains.flows import ContentManagementFlow, ContentOptions
from taskweave.domains.routing import ModelRouter, RoutingPreferences
from taskweave.domains.usage import UsageTracker

logger = logging.getLogger(__name__)


@lru_cache
def get_usage_tracker() -> UsageTracker:
    """Get usage tracker singleton."""
    return UsageTracker(max_records=get_settings().usage_max_records)


@lru_cache
def get_gateways() -> dict[str, ProviderGateway]:
    """Get provider gateway bindings for configured providers."""
    return build_gateways(get_settings())


@lru_cache
def get_router() -> ModelRouter:
    """Get model router singleton."""
    return ModelRouter.from_settings(
        get_settings(), gateways=get_gateways(), usage_sink=get_usage_tracker()
    )


def get_routing_preferences() -> RoutingPreferences:
    settings = get_settings()
    return RoutingPreferences(prefer_cost=settings.prefer_cost, prefer_speed=settings.prefer_speed)


def get_content_flow(
    router: ModelRouter = Depends(get_router),
    preferences: RoutingPreferences = Depends(get_routing_preferences),
) -> ContentManagementFlow:
    return ContentManagementFlow(
        router,
        default_options=ContentOptions(min_quality_score=get_settings().min_quality_score),
        preferences=preferences,
    )


async def init_services() -> None:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    router = get_router()
    logger.info("  Available models: %d", len(router.available_models()))


async def cleanup_services() -> None:
    """Flush usage records and close provider clients on shutdown."""
    await get_usage_tracker().persist()
    for gateway in get_gateways().values():
        if isinstance(gateway, HTTPGateway):
            await gateway.aclose()
