"""
Configuration - Application settings, error taxonomy, and logging setup.
"""

from .errors import (
    ErrorCode,
    LLMError,
    MalformedAgentOutputError,
    NoAvailableModelError,
    PipelineDeadlockError,
    ProviderNotConfiguredError,
    StepFailureError,
    TaskWeaveError,
    UnknownModelError,
)
from .log_setup import configure_logging
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "configure_logging",
    # Errors
    "ErrorCode",
    "TaskWeaveError",
    "NoAvailableModelError",
    "UnknownModelError",
    "ProviderNotConfiguredError",
    "PipelineDeadlockError",
    "StepFailureError",
    "MalformedAgentOutputError",
    "LLMError",
]
