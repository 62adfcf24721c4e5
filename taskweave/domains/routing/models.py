"""
Routing Models - Data types for the routing domain.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator


class Provider(str, Enum):
    """Model providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    STABILITY = "stability"
    IDEOGRAM = "ideogram"


class Modality(str, Enum):
    """Output modality of a model."""

    TEXT = "text"
    IMAGE = "image"


class ModelDescriptor(BaseModel):
    """Static catalog entry for a model."""

    id: str
    api_model: str  # Name sent to the provider
    provider: Provider
    capabilities: frozenset[str] = Field(default_factory=frozenset)
    weaknesses: frozenset[str] = Field(default_factory=frozenset)
    cost_per_1k_tokens: float = Field(default=0.0, ge=0.0)
    max_tokens: int = Field(default=0, ge=0)
    modality: Modality = Modality.TEXT
    supports_streaming: bool = False
    supports_images: bool = False

    model_config = {"frozen": True}

    @property
    def is_fast(self) -> bool:
        """Tagged for speed-preferring selection."""
        return "fast" in self.capabilities or "speed" in self.capabilities


class TaskModelMapping(BaseModel):
    """Primary model and ordered fallbacks for a task."""

    primary: str
    fallbacks: tuple[str, ...] = ()
    rationale: str = ""

    model_config = {"frozen": True}

    @property
    def candidates(self) -> list[str]:
        """Primary followed by fallbacks, in rank order."""
        return [self.primary, *self.fallbacks]


class ModelCatalog(BaseModel):
    """
    Model registry plus task map, injected into a router.

    Both maps are read-only views, so a shared catalog cannot be edited
    through one router and change routing for the others.
    """

    models: Mapping[str, ModelDescriptor]
    tasks: Mapping[str, TaskModelMapping]
    default_mapping: TaskModelMapping

    model_config = {"frozen": True}

    @field_validator("models", "tasks", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("models", "tasks")
    def _plain(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    def get_model(self, model_id: str) -> ModelDescriptor | None:
        """Look up a descriptor by id."""
        return self.models.get(model_id)

    def mapping_for(self, task: str) -> TaskModelMapping:
        """Mapping for a task, or the default mapping for unknown tasks."""
        return self.tasks.get(task, self.default_mapping)


class RoutingPreferences(BaseModel):
    """Caller preferences for model selection."""

    prefer_cost: bool = False
    prefer_speed: bool = False
    prefer_quality: bool = False
    max_budget_per_task: float | None = None

    model_config = {"frozen": True}


class RouteResult(BaseModel):
    """Outcome of one routed model call."""

    model_id: str
    provider: Provider
    task: str
    response: str
    tokens_in: int | None = None
    tokens_out: int | None = None
    tokens_used: int | None = None
    cost: float | None = None  # USD
    latency_ms: float = 0.0

    model_config = {"protected_namespaces": ()}


class StreamChunk(BaseModel):
    """One fragment of a streamed routed call."""

    chunk: str
    model_id: str

    model_config = {"protected_namespaces": ()}
