"""
API Middleware - Request tracing, timing and error mapping.

Every response carries ``X-Request-ID``; taxonomy errors become JSON bodies
of the form ``{"error": {...}, "request_id": ...}``.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from taskweave.config.errors import ErrorCode, TaskWeaveError

logger = logging.getLogger(__name__)

__all__ = [
    "RequestIDMiddleware",
    "LatencyMiddleware",
    "ErrorHandlerMiddleware",
    "error_code_to_status",
]

CallNext = Callable[[Request], Awaitable[Response]]

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.PIPELINE_INVALID_STEP: 400,
    ErrorCode.LLM_AUTH_FAILED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ROUTING_UNKNOWN_MODEL: 404,
    ErrorCode.LLM_RATE_LIMITED: 429,
    # Upstream model replied, but unusably
    ErrorCode.LLM_INVALID_RESPONSE: 502,
    ErrorCode.AGENT_MALFORMED_OUTPUT: 502,
    ErrorCode.ROUTING_NO_AVAILABLE_MODEL: 503,
    ErrorCode.ROUTING_PROVIDER_NOT_CONFIGURED: 503,
    ErrorCode.LLM_UNAVAILABLE: 503,
}


def error_code_to_status(code: ErrorCode) -> int:
    """HTTP status for an error code; unmapped codes are 500."""
    return ERROR_STATUS.get(code, 500)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class LatencyMiddleware(BaseHTTPMiddleware):
    """
    Time requests.

    Event streams return as soon as headers are ready, so their timing is
    logged as time-to-open along with the pipeline id.
    """

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"

        pipeline_id = response.headers.get("X-Pipeline-ID")
        if pipeline_id:
            logger.info(
                "%s %s stream opened pipeline=%s open_ms=%.2f request_id=%s",
                request.method,
                request.url.path,
                pipeline_id[:8],
                duration_ms,
                _request_id(request),
            )
        else:
            logger.info(
                "%s %s status=%d latency_ms=%.2f request_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                _request_id(request),
            )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Convert TaskWeaveError exceptions to structured JSON responses."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        try:
            return await call_next(request)
        except TaskWeaveError as e:
            status = error_code_to_status(e.code)
            log = logger.warning if status < 500 else logger.error
            log(
                "%s %s -> %s: %s request_id=%s",
                request.method,
                request.url.path,
                e.code.value,
                e.message,
                _request_id(request),
            )
            headers = {"Retry-After": "30"} if e.code is ErrorCode.LLM_RATE_LIMITED else None
            return self._respond(request, status, e.to_dict(), headers)
        except Exception as e:
            logger.exception("Unhandled error: %s request_id=%s", e, _request_id(request))
            error = {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "Internal server error",
                "details": {},
            }
            return self._respond(request, 500, error)

    @staticmethod
    def _respond(
        request: Request,
        status: int,
        error: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status,
            content={"error": error, "request_id": _request_id(request)},
            headers=headers,
        )
