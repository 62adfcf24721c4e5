"""
TaskWeave - Multi-model task orchestration for LLM-backed agents.

Example:
    >>> from taskweave.domains.routing import ModelRouter
    >>> router = ModelRouter.from_settings(get_settings())
    >>> result = await router.route("architecture-planning", "Plan a todo app")
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
