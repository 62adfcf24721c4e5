"""
Agent Output Parsing - Locate and validate structured payloads in model text.

Models wrap JSON in prose or markdown fences; this pulls out the outermost
object or array and validates it against the expected shape.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from taskweave.config.errors import MalformedAgentOutputError

__all__ = ["extract_json", "parse_agent_json"]

T = TypeVar("T")

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_EXCERPT_CHARS = 200


def _excerpt(text: str) -> str:
    return text[:_EXCERPT_CHARS]


def extract_json(text: str) -> Any:
    """
    Extract the JSON payload embedded in model text.

    Raises:
        MalformedAgentOutputError: No parseable object or array was found
    """
    candidate = text.strip()

    fenced = _FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()

    starts = [i for i in (candidate.find("{"), candidate.find("[")) if i != -1]
    end = max(candidate.rfind("}"), candidate.rfind("]"))
    if not starts or end == -1:
        raise MalformedAgentOutputError(
            "No JSON payload found in model output", {"excerpt": _excerpt(text)}
        )

    try:
        return json.loads(candidate[min(starts):end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedAgentOutputError(
            f"Invalid JSON in model output: {exc.msg}", {"excerpt": _excerpt(text)}
        ) from exc


def parse_agent_json(text: str, schema: type[T] | Any) -> T:
    """
    Extract JSON from model text and validate it.

    Args:
        text: Raw model response
        schema: Pydantic model or any type TypeAdapter accepts

    Raises:
        MalformedAgentOutputError: Payload missing, unparseable or wrong shape
    """
    data = extract_json(text)
    try:
        return TypeAdapter(schema).validate_python(data)
    except ValidationError as exc:
        raise MalformedAgentOutputError(
            f"Model output does not match expected shape: {exc.error_count()} error(s)",
            {"excerpt": _excerpt(text)},
        ) from exc
