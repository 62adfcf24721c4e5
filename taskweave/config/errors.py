"""
Error Taxonomy - Consistent error codes across the application.

Usage:
    from taskweave.config.errors import ErrorCode, TaskWeaveError

    raise TaskWeaveError(ErrorCode.PIPELINE_DEADLOCK, "No eligible step")
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Routing errors
    ROUTING_NO_AVAILABLE_MODEL = "ROUTING_NO_AVAILABLE_MODEL"
    ROUTING_UNKNOWN_MODEL = "ROUTING_UNKNOWN_MODEL"
    ROUTING_PROVIDER_NOT_CONFIGURED = "ROUTING_PROVIDER_NOT_CONFIGURED"

    # Pipeline errors
    PIPELINE_DEADLOCK = "PIPELINE_DEADLOCK"
    PIPELINE_STEP_FAILED = "PIPELINE_STEP_FAILED"
    PIPELINE_INVALID_STEP = "PIPELINE_INVALID_STEP"

    # Agent output errors
    AGENT_MALFORMED_OUTPUT = "AGENT_MALFORMED_OUTPUT"

    # LLM/Model errors
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"
    LLM_INVALID_RESPONSE = "LLM_INVALID_RESPONSE"
    LLM_AUTH_FAILED = "LLM_AUTH_FAILED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


class TaskWeaveError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class NoAvailableModelError(TaskWeaveError):
    """No candidate model for a task is configured."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.ROUTING_NO_AVAILABLE_MODEL, message, details)


class UnknownModelError(TaskWeaveError):
    """Model id is absent from the registry."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.ROUTING_UNKNOWN_MODEL, message, details)


class ProviderNotConfiguredError(TaskWeaveError):
    """No gateway is bound for the selected model's provider."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.ROUTING_PROVIDER_NOT_CONFIGURED, message, details)


class PipelineDeadlockError(TaskWeaveError):
    """Step graph has no eligible step yet is not fully terminal."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.PIPELINE_DEADLOCK, message, details)


class StepFailureError(TaskWeaveError):
    """A step's operation raised; aborts the owning run."""

    def __init__(
        self,
        step_id: str,
        cause: BaseException,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.step_id = step_id
        self.cause = cause
        super().__init__(
            ErrorCode.PIPELINE_STEP_FAILED,
            f"Step '{step_id}' failed: {str(cause) or type(cause).__name__}",
            {"step_id": step_id, "cause": type(cause).__name__, **(details or {})},
        )


class MalformedAgentOutputError(TaskWeaveError):
    """Structured payload could not be located or parsed in model text."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.AGENT_MALFORMED_OUTPUT, message, details)


class LLMError(TaskWeaveError):
    """LLM/model provider errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.LLM_UNAVAILABLE,
    ) -> None:
        super().__init__(code, message, details)
