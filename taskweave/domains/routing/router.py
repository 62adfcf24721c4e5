"""
Model Router - Picks the backing model for a task and dispatches the call.

Selection walks the task's ranked candidates (primary, then fallbacks),
keeps the available ones and applies cost/speed preferences. Fallback only
affects initial selection: provider errors after dispatch pass through.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from taskweave.config.errors import (
    NoAvailableModelError,
    ProviderNotConfiguredError,
    UnknownModelError,
)

from .models import ModelCatalog, ModelDescriptor, RouteResult, RoutingPreferences, StreamChunk
from .registry import DEFAULT_CATALOG, availability_from_providers

if TYPE_CHECKING:
    from taskweave.adapters.llm.contracts import ProviderGateway
    from taskweave.config.settings import Settings

    from .contracts import UsageSink

logger = logging.getLogger(__name__)

__all__ = ["ModelRouter", "calculate_cost"]


def calculate_cost(descriptor: ModelDescriptor, tokens_in: int, tokens_out: int) -> float:
    """Cost in USD for a call with the given token counts."""
    return (tokens_in + tokens_out) / 1000 * descriptor.cost_per_1k_tokens


class ModelRouter:
    """
    Task-aware model router.

    Holds no mutable state about in-flight calls; the catalog and the
    availability set are read-only for the router's lifetime, so several
    routers with different availability can coexist.
    """

    def __init__(
        self,
        catalog: ModelCatalog = DEFAULT_CATALOG,
        gateways: Mapping[str, ProviderGateway] | None = None,
        availability: Mapping[str, bool] | None = None,
        usage_sink: UsageSink | None = None,
    ) -> None:
        """
        Initialize router.

        Args:
            catalog: Model registry and task map
            gateways: Provider name -> gateway binding
            availability: Model id -> available; defaults to every model
                whose provider has a gateway binding
            usage_sink: Optional reporting sink for completed calls
        """
        self._catalog = catalog
        self._gateways = dict(gateways or {})
        if availability is None:
            availability = availability_from_providers(catalog, self._gateways)
        self._availability: Mapping[str, bool] = MappingProxyType(dict(availability))
        self._usage = usage_sink

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        gateways: Mapping[str, ProviderGateway] | None = None,
        catalog: ModelCatalog = DEFAULT_CATALOG,
        usage_sink: UsageSink | None = None,
    ) -> ModelRouter:
        """
        Build a router from configured credentials.

        A provider counts as available only when it has both a credential
        and a gateway binding.
        """
        if gateways is None:
            from taskweave.adapters.llm.gateways import build_gateways

            gateways = build_gateways(settings)

        configured = settings.configured_providers() & set(gateways)
        availability = availability_from_providers(catalog, configured)
        logger.info("Router configured providers: %s", ", ".join(sorted(configured)) or "none")
        return cls(
            catalog=catalog,
            gateways={p: g for p, g in gateways.items() if p in configured},
            availability=availability,
            usage_sink=usage_sink,
        )

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def is_available(self, model_id: str) -> bool:
        return bool(self._availability.get(model_id, False))

    def available_models(self) -> list[str]:
        """Ids of all available models, in catalog order."""
        return [model_id for model_id in self._catalog.models if self.is_available(model_id)]

    def candidates_for(self, task: str) -> list[str]:
        """Ranked candidates for a task, before availability filtering."""
        return self._catalog.mapping_for(task).candidates

    def select_best_model(
        self,
        task: str,
        preferences: RoutingPreferences | None = None,
    ) -> str:
        """
        Select a model for a task.

        Raises:
            NoAvailableModelError: No candidate for the task is available
        """
        prefs = preferences or RoutingPreferences()
        candidates = self.candidates_for(task)
        available = [model_id for model_id in candidates if self.is_available(model_id)]

        if not available:
            raise NoAvailableModelError(
                f"No available model for task '{task}'",
                {"task": task, "candidates": candidates},
            )

        selected = available[0]
        if prefs.prefer_cost:
            # sorted() is stable, so ties keep candidate order
            selected = sorted(
                available, key=lambda m: self._descriptor(m).cost_per_1k_tokens
            )[0]
        elif prefs.prefer_speed:
            fast = [m for m in available if self._descriptor(m).is_fast]
            if fast:
                selected = fast[0]

        logger.info("Selected %s -> %s", task, selected)
        return selected

    def _descriptor(self, model_id: str) -> ModelDescriptor:
        descriptor = self._catalog.get_model(model_id)
        if descriptor is None:
            raise UnknownModelError(f"Unknown model: {model_id}", {"model_id": model_id})
        return descriptor

    def _resolve(self, model_id: str) -> tuple[ModelDescriptor, ProviderGateway]:
        descriptor = self._descriptor(model_id)

        gateway = self._gateways.get(descriptor.provider.value)
        if gateway is None:
            raise ProviderNotConfiguredError(
                f"No gateway configured for provider '{descriptor.provider.value}'",
                {"model_id": model_id, "provider": descriptor.provider.value},
            )
        return descriptor, gateway

    async def route(
        self,
        task: str,
        prompt: str,
        preferences: RoutingPreferences | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> RouteResult:
        """
        Route a prompt to the best model for a task.

        Args:
            task: Abstract task name
            prompt: Full prompt text
            preferences: Cost/speed preferences
            cancel: Cancellation signal handed through to the gateway

        Returns:
            RouteResult with response text, usage and latency
        """
        model_id = self.select_best_model(task, preferences)
        descriptor, gateway = self._resolve(model_id)

        start = time.perf_counter()
        response = await gateway.generate(descriptor.api_model, prompt, cancel=cancel)
        latency_ms = (time.perf_counter() - start) * 1000

        cost = None
        if response.tokens_used is not None:
            cost = calculate_cost(
                descriptor, response.tokens_in or 0, response.tokens_out or 0
            )

        logger.debug("Routed %s via %s in %.0fms", task, model_id, latency_ms)

        result = RouteResult(
            model_id=model_id,
            provider=descriptor.provider,
            task=task,
            response=response.text,
            tokens_in=response.tokens_in,
            tokens_out=response.tokens_out,
            tokens_used=response.tokens_used,
            cost=cost,
            latency_ms=latency_ms,
        )
        await self._report(result)
        return result

    async def route_stream(
        self,
        task: str,
        prompt: str,
        preferences: RoutingPreferences | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Route a prompt and stream the response.

        Models that cannot stream yield their full response as one chunk.
        """
        model_id = self.select_best_model(task, preferences)
        descriptor, gateway = self._resolve(model_id)

        start = time.perf_counter()
        try:
            if descriptor.supports_streaming:
                async for chunk in gateway.generate_stream(
                    descriptor.api_model, prompt, cancel=cancel
                ):
                    yield StreamChunk(chunk=chunk, model_id=model_id)
            else:
                response = await gateway.generate(descriptor.api_model, prompt, cancel=cancel)
                yield StreamChunk(chunk=response.text, model_id=model_id)
        finally:
            logger.debug(
                "Stream %s via %s closed after %.0fms",
                task,
                model_id,
                (time.perf_counter() - start) * 1000,
            )

    async def _report(self, result: RouteResult) -> None:
        if self._usage is None or result.tokens_used is None:
            return
        try:
            await self._usage.track(
                model=result.model_id,
                task=result.task,
                tokens_in=result.tokens_in or 0,
                tokens_out=result.tokens_out or 0,
                duration_ms=result.latency_ms,
            )
        except Exception:
            # The model call already succeeded; reporting must not fail it
            logger.exception("Usage reporting failed for %s (%s)", result.model_id, result.task)
