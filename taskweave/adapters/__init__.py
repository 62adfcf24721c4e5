"""
Adapters - External service integrations.

All provider API calls are wrapped here to isolate domains from third-party changes.
"""

from .llm import LLMResponse, ProviderGateway, build_gateways

__all__ = [
    "LLMResponse",
    "ProviderGateway",
    "build_gateways",
]
