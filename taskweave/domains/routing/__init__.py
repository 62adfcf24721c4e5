"""
Routing Domain - Task-aware model selection and dispatch.

Usage:
    from taskweave.domains.routing import ModelRouter, RoutingPreferences

    router = ModelRouter.from_settings(get_settings())
    result = await router.route("api-generation", prompt, RoutingPreferences(prefer_cost=True))
"""

from .contracts import TaskRouter, UsageSink
from .models import (
    Modality,
    ModelCatalog,
    ModelDescriptor,
    Provider,
    RouteResult,
    RoutingPreferences,
    StreamChunk,
    TaskModelMapping,
)
from .registry import (
    DEFAULT_CATALOG,
    DEFAULT_TASK_MAPPING,
    MODEL_REGISTRY,
    TASK_MODEL_MAP,
    availability_from_providers,
)
from .router import ModelRouter, calculate_cost

__all__ = [
    # Contracts
    "TaskRouter",
    "UsageSink",
    # Models
    "Provider",
    "Modality",
    "ModelDescriptor",
    "TaskModelMapping",
    "ModelCatalog",
    "RoutingPreferences",
    "RouteResult",
    "StreamChunk",
    # Registry
    "MODEL_REGISTRY",
    "TASK_MODEL_MAP",
    "DEFAULT_TASK_MAPPING",
    "DEFAULT_CATALOG",
    "availability_from_providers",
    # Implementation
    "ModelRouter",
    "calculate_cost",
]
