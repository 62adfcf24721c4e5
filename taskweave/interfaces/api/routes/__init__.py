"""
API Routes.
"""

from . import content, generation, health, models, usage

__all__ = ["health", "models", "generation", "content", "usage"]
