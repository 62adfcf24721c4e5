"""
Tests for agent events.
"""

from __future__ import annotations

import json

import pytest

from .events import AgentEvent, AgentEventKind


def _event(**fields) -> AgentEvent:
    base = {
        "kind": AgentEventKind.PROGRESS,
        "pipeline_id": "p-1",
        "step_id": "backend",
        "agent_id": "backend",
        "agent_name": "Backend",
    }
    return AgentEvent(**{**base, **fields})


def test_to_wire_keeps_envelope_and_payload() -> None:
    """Test the wire shape carries envelope fields and set payload only."""
    wire = _event(message="Generating routes", progress=40).to_wire()

    assert wire["kind"] == "progress"
    assert wire["step_id"] == "backend"
    assert wire["agent_id"] == "backend"
    assert wire["message"] == "Generating routes"
    assert wire["progress"] == 40
    assert "timestamp" in wire
    assert "chunk" not in wire
    assert "warning" not in wire
    json.dumps(wire)


def test_to_wire_keeps_warning_flag() -> None:
    """Test warning events advertise the flag."""
    assert _event(message="bad json", warning=True).to_wire()["warning"] is True


def test_kind_values_use_wire_names() -> None:
    """Test hyphenated kinds serialize as on the wire."""
    assert _event(kind=AgentEventKind.TOKEN_CHUNK, chunk="x").to_wire()["kind"] == "token-chunk"
    assert _event(kind=AgentEventKind.FILE_GENERATED).to_wire()["kind"] == "file-generated"


def test_progress_bounds() -> None:
    """Test progress must stay within 0-100."""
    with pytest.raises(ValueError):
        _event(progress=101)
    with pytest.raises(ValueError):
        _event(progress=-1)


def test_terminal_kinds() -> None:
    """Test terminal classification."""
    assert _event(kind=AgentEventKind.COMPLETE).is_terminal
    assert _event(kind=AgentEventKind.SKIPPED).is_terminal
    assert not _event(kind=AgentEventKind.START).is_terminal


def test_for_agent_translates_identity() -> None:
    """Test events can be re-attributed for an observer."""
    event = _event(kind=AgentEventKind.START)
    translated = event.for_agent("backend-agent", "Backend Engineer")

    assert translated.agent_id == "backend-agent"
    assert translated.agent_name == "Backend Engineer"
    assert translated.step_id == "backend"
    assert translated.id == event.id
