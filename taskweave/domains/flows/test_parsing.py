"""
Tests for agent output parsing.
"""

from __future__ import annotations

import pytest

from taskweave.config.errors import ErrorCode, MalformedAgentOutputError

from .content_models import Entity, QualityReview
from .parsing import extract_json, parse_agent_json


# --- extract_json Tests ---


def test_extract_json_from_fence() -> None:
    """Test fenced JSON is unwrapped."""
    text = 'Here you go:\n```json\n{"score": 82}\n```\nLet me know.'
    assert extract_json(text) == {"score": 82}


def test_extract_json_from_prose() -> None:
    """Test JSON surrounded by prose is located."""
    text = 'Sure! {"tags": ["python", "asyncio"]} Hope that helps.'
    assert extract_json(text) == {"tags": ["python", "asyncio"]}


def test_extract_json_array() -> None:
    """Test a top-level array is accepted."""
    assert extract_json('Entities: [{"text": "Python"}]') == [{"text": "Python"}]


def test_extract_json_without_payload() -> None:
    """Test plain prose raises a malformed-output error."""
    with pytest.raises(MalformedAgentOutputError) as exc_info:
        extract_json("I could not review this content.")
    assert exc_info.value.code is ErrorCode.AGENT_MALFORMED_OUTPUT
    assert "excerpt" in exc_info.value.details


def test_extract_json_invalid() -> None:
    """Test broken JSON raises a malformed-output error."""
    with pytest.raises(MalformedAgentOutputError, match="Invalid JSON"):
        extract_json('{"score": 82,, }')


# --- parse_agent_json Tests ---


def test_parse_accepts_camel_case_keys() -> None:
    """Test camelCase replies map onto snake_case fields."""
    review = parse_agent_json('{"overallScore": 91, "strengths": ["clear"]}', QualityReview)
    assert review.overall_score == 91
    assert review.strengths == ["clear"]
    assert review.scores.grammar == 70


def test_parse_generic_shapes() -> None:
    """Test non-model shapes validate through a type adapter."""
    files = parse_agent_json('{"app/api/route.ts": "export {}"}', dict[str, str])
    assert files == {"app/api/route.ts": "export {}"}

    entities = parse_agent_json('[{"text": "Berlin", "type": "place"}]', list[Entity])
    assert entities[0].text == "Berlin"


def test_parse_wrong_shape() -> None:
    """Test a payload of the wrong shape is malformed."""
    with pytest.raises(MalformedAgentOutputError, match="expected shape"):
        parse_agent_json('{"overallScore": "excellent"}', QualityReview)
