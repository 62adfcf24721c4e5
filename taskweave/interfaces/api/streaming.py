"""
Event Streaming - Server-sent events for flow runs.

Each AgentEvent becomes one ``data:`` frame; the flow result follows as a
final ``event: result`` frame.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi.responses import StreamingResponse

from taskweave.config.errors import TaskWeaveError
from taskweave.domains.flows import FlowRun

logger = logging.getLogger(__name__)

__all__ = ["sse_frame", "stream_flow", "flow_response"]


def sse_frame(data: Any, event: str | None = None) -> str:
    payload = data if isinstance(data, str) else json.dumps(data)
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {payload}\n\n"


async def stream_flow(run: FlowRun[Any]) -> AsyncIterator[str]:
    """
    Serialize a flow run as SSE frames.

    A client disconnect closes this generator, which closes the run's
    event iterator so the run records the abandonment.
    """
    events = run.__aiter__()
    try:
        async for event in events:
            yield sse_frame(event.to_wire())
    except TaskWeaveError as e:
        logger.error("Flow %s ended with %s: %s", run.pipeline_id[:8], e.code.value, e.message)
        yield sse_frame(e.to_dict(), event="error")
    finally:
        await events.aclose()

    if run.done:
        yield sse_frame(run.result.model_dump_json(), event="result")


def flow_response(run: FlowRun[Any]) -> StreamingResponse:
    return StreamingResponse(
        stream_flow(run),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Pipeline-ID": run.pipeline_id},
    )
