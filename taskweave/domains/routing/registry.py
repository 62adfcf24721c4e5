"""
Model Registry - Built-in model catalog and task-to-model map.

Pure data. Routers receive a ModelCatalog at construction, so tests can build
catalogs of their own and several routers can coexist.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .models import Modality, ModelCatalog, ModelDescriptor, Provider, TaskModelMapping

__all__ = [
    "MODEL_REGISTRY",
    "TASK_MODEL_MAP",
    "DEFAULT_TASK_MAPPING",
    "DEFAULT_CATALOG",
    "availability_from_providers",
]


def _text_model(
    model_id: str,
    api_model: str,
    provider: Provider,
    capabilities: Iterable[str],
    weaknesses: Iterable[str],
    cost: float,
    max_tokens: int,
) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        api_model=api_model,
        provider=provider,
        capabilities=frozenset(capabilities),
        weaknesses=frozenset(weaknesses),
        cost_per_1k_tokens=cost,
        max_tokens=max_tokens,
        modality=Modality.TEXT,
        supports_streaming=True,
        supports_images=True,
    )


def _image_model(
    model_id: str,
    api_model: str,
    provider: Provider,
    capabilities: Iterable[str],
    weaknesses: Iterable[str],
) -> ModelDescriptor:
    # Per-image pricing, so no token cost or limit
    return ModelDescriptor(
        id=model_id,
        api_model=api_model,
        provider=provider,
        capabilities=frozenset(capabilities),
        weaknesses=frozenset(weaknesses),
        modality=Modality.IMAGE,
    )


_MODELS = [
    # Anthropic
    _text_model(
        "claude-opus-4", "claude-opus-4-20250514", Provider.ANTHROPIC,
        ["reasoning", "planning", "complex-analysis", "long-context", "code-review"],
        ["speed", "cost"],
        0.015, 200_000,
    ),
    _text_model(
        "claude-sonnet-4", "claude-sonnet-4-20250514", Provider.ANTHROPIC,
        ["code-generation", "balanced", "fast", "api-design", "database-schema"],
        ["creative-writing"],
        0.003, 200_000,
    ),
    # OpenAI
    _text_model(
        "gpt-4o", "gpt-4o", Provider.OPENAI,
        ["creativity", "ui-design", "visual-understanding", "css-styling", "fast"],
        ["long-context", "cost"],
        0.005, 128_000,
    ),
    _text_model(
        "gpt-4-turbo", "gpt-4-turbo", Provider.OPENAI,
        ["code", "general-purpose", "reliability"],
        ["cost", "speed"],
        0.01, 128_000,
    ),
    _text_model(
        "gpt-4o-mini", "gpt-4o-mini", Provider.OPENAI,
        ["fast", "cheap", "simple-tasks"],
        ["complex-reasoning", "long-context"],
        0.00015, 128_000,
    ),
    # Google
    _text_model(
        "gemini-2.0-flash", "gemini-2.0-flash", Provider.GOOGLE,
        ["speed", "cost", "multimodal", "simple-edits"],
        ["complex-reasoning", "creativity"],
        0.0001, 1_000_000,
    ),
    _text_model(
        "gemini-1.5-pro", "gemini-1.5-pro", Provider.GOOGLE,
        ["long-context", "multimodal", "balanced", "cost-effective"],
        ["creativity", "nuanced-writing"],
        0.00125, 2_000_000,
    ),
    # Images
    _image_model(
        "dall-e-3", "dall-e-3", Provider.OPENAI,
        ["photorealistic", "text-in-images", "consistency", "illustrations"],
        ["3d-icons", "logos"],
    ),
    _image_model(
        "stable-diffusion-xl", "stable-diffusion-xl-1024-v1-0", Provider.STABILITY,
        ["artistic", "customizable", "open-source", "styles"],
        ["text-in-images", "consistency"],
    ),
    _image_model(
        "ideogram", "ideogram-v2", Provider.IDEOGRAM,
        ["3d-icons", "logos", "text-rendering", "clean-vectors"],
        ["photorealistic", "complex-scenes"],
    ),
]

MODEL_REGISTRY: Mapping[str, ModelDescriptor] = MappingProxyType({m.id: m for m in _MODELS})


def _map(primary: str, fallbacks: list[str], rationale: str) -> TaskModelMapping:
    return TaskModelMapping(primary=primary, fallbacks=tuple(fallbacks), rationale=rationale)


TASK_MODEL_MAP: Mapping[str, TaskModelMapping] = MappingProxyType({
    # Planning & architecture
    "architecture-planning": _map(
        "claude-opus-4", ["gpt-4-turbo", "gemini-1.5-pro"],
        "Needs deep reasoning and system design thinking",
    ),
    "tech-stack-selection": _map(
        "claude-opus-4", ["gpt-4-turbo", "claude-sonnet-4"],
        "Requires understanding of trade-offs",
    ),
    # UI & design
    "ui-component-design": _map(
        "gpt-4o", ["claude-sonnet-4", "gemini-1.5-pro"],
        "Strong at creative, visual-first tasks",
    ),
    "css-styling": _map(
        "gpt-4o", ["claude-sonnet-4", "gpt-4-turbo"],
        "Strong at aesthetic decisions and modern CSS",
    ),
    "color-palette": _map("gpt-4o", ["claude-sonnet-4"], "Creative color combinations"),
    "animation-design": _map("gpt-4o", ["claude-sonnet-4"], "Visual creativity for motion design"),
    # Backend & logic
    "api-generation": _map(
        "claude-sonnet-4", ["gpt-4-turbo", "gemini-1.5-pro"],
        "Structured, reliable code generation",
    ),
    "database-schema": _map(
        "claude-sonnet-4", ["gpt-4-turbo", "claude-opus-4"],
        "Complex relational logic and SQL",
    ),
    "auth-logic": _map("claude-sonnet-4", ["gpt-4-turbo"], "Security-sensitive, needs precision"),
    "validation-logic": _map(
        "claude-sonnet-4", ["gpt-4-turbo", "gemini-1.5-pro"],
        "Thorough edge case handling",
    ),
    # Integration & review
    "code-review": _map(
        "claude-opus-4", ["gpt-4-turbo", "claude-sonnet-4"],
        "Needs thorough analysis and bug detection",
    ),
    "conflict-resolution": _map(
        "claude-opus-4", ["gpt-4-turbo"],
        "Complex reasoning to merge code from multiple agents",
    ),
    "final-assembly": _map(
        "claude-opus-4", ["gpt-4-turbo", "claude-sonnet-4"],
        "Ensures everything works together",
    ),
    # Content
    "content-writing": _map(
        "claude-sonnet-4", ["gpt-4o", "gemini-1.5-pro"],
        "Fluent long-form writing with consistent tone",
    ),
    "content-rewriting": _map(
        "claude-sonnet-4", ["gpt-4o", "gpt-4o-mini"],
        "Faithful edits that keep the author's voice",
    ),
    "quality-review": _map(
        "claude-opus-4", ["gpt-4-turbo", "claude-sonnet-4"],
        "Careful critique across grammar, clarity and accuracy",
    ),
    "seo-optimization": _map(
        "gpt-4o", ["claude-sonnet-4", "gemini-2.0-flash"],
        "Concise metadata with keyword awareness",
    ),
    "auto-tagging": _map(
        "gemini-2.0-flash", ["gpt-4o-mini", "claude-sonnet-4"],
        "Cheap classification over the full text",
    ),
    "entity-extraction": _map(
        "gemini-1.5-pro", ["gpt-4o-mini", "claude-sonnet-4"],
        "Long-context extraction at low cost",
    ),
    "keyword-extraction": _map(
        "gemini-2.0-flash", ["gpt-4o-mini"],
        "Mechanical extraction, prioritize speed",
    ),
    "sentiment-analysis": _map(
        "gemini-2.0-flash", ["gpt-4o-mini", "claude-sonnet-4"],
        "Simple scoring task",
    ),
    # Images
    "icon-generation": _map(
        "ideogram", ["dall-e-3", "stable-diffusion-xl"],
        "Clean, 3D-style icons and logos",
    ),
    "illustration-generation": _map(
        "dall-e-3", ["stable-diffusion-xl", "ideogram"],
        "Consistent, high-quality illustrations",
    ),
    "hero-image": _map("dall-e-3", ["stable-diffusion-xl"], "Photorealistic, attention-grabbing images"),
    # Quick / cheap
    "simple-edits": _map(
        "gemini-2.0-flash", ["gpt-4o-mini", "claude-sonnet-4"],
        "Fast and cheap for simple changes",
    ),
    "typo-fixes": _map("gemini-2.0-flash", ["gpt-4o-mini"], "Simple task, prioritize speed"),
    "format-code": _map("gemini-2.0-flash", ["gpt-4o-mini"], "Mechanical task, use cheapest option"),
})

DEFAULT_TASK_MAPPING = _map(
    "claude-sonnet-4", ["gpt-4-turbo", "gemini-1.5-pro"],
    "General-purpose default for unmapped tasks",
)

DEFAULT_CATALOG = ModelCatalog(
    models=MODEL_REGISTRY,
    tasks=TASK_MODEL_MAP,
    default_mapping=DEFAULT_TASK_MAPPING,
)


def availability_from_providers(
    catalog: ModelCatalog,
    configured_providers: Iterable[str | Provider],
) -> Mapping[str, bool]:
    """
    Build the read-only availability set.

    Every catalog model whose provider is configured is marked available.
    """
    configured = {Provider(p) for p in configured_providers}
    return MappingProxyType(
        {model_id: desc.provider in configured for model_id, desc in catalog.models.items()}
    )
