"""
LLM Adapter - Provider gateways for language model access.

Usage:
    from taskweave.adapters.llm import build_gateways

    gateways = build_gateways(get_settings())
    response = await gateways["anthropic"].generate("claude-sonnet-4-20250514", "Hello")
"""

from .contracts import LLMResponse, ProviderGateway
from .gateways import (
    AnthropicGateway,
    GoogleGateway,
    HTTPGateway,
    OpenAIGateway,
    build_gateways,
)

__all__ = [
    "LLMResponse",
    "ProviderGateway",
    "HTTPGateway",
    "AnthropicGateway",
    "OpenAIGateway",
    "GoogleGateway",
    "build_gateways",
]
