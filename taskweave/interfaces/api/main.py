"""
FastAPI Main Application - Routing, generation and content API.

Run with: uvicorn taskweave.interfaces.api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskweave import __version__
from taskweave.config import configure_logging, get_settings

from .deps import cleanup_services, init_services
from .middleware import ErrorHandlerMiddleware, LatencyMiddleware, RequestIDMiddleware
from .routes import content, generation, health, models, usage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, warm the router, and flush usage on shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    providers = sorted(settings.configured_providers())
    logger.info("Starting TaskWeave API %s", __version__)
    if providers:
        logger.info("  Configured providers: %s", ", ".join(providers))
    else:
        logger.warning("  No provider credentials set; every routed call will fail")

    await init_services()
    yield

    logger.info("Shutting down TaskWeave API...")
    await cleanup_services()


def create_app() -> FastAPI:
    """Create FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="TaskWeave API",
        description="Multi-model task routing and agent pipeline orchestration",
        version=__version__,
        lifespan=lifespan,
        debug=settings.api_debug,
    )

    # Last added runs outermost
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LatencyMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        # Stream clients read the run id before the first event
        expose_headers=["X-Request-ID", "X-Pipeline-ID"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(models.router, prefix="/api", tags=["Models"])
    app.include_router(generation.router, prefix="/api/generate", tags=["Generation"])
    app.include_router(content.router, prefix="/api/content", tags=["Content"])
    app.include_router(usage.router, prefix="/api/usage", tags=["Usage"])

    return app


app = create_app()
