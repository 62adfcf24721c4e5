"""Tests for API Routes."""

from __future__ import annotations

import json
from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from taskweave.adapters.llm import LLMResponse
from taskweave.config import LLMError
from taskweave.config.errors import ErrorCode
from taskweave.domains.routing import DEFAULT_CATALOG, ModelRouter
from taskweave.domains.usage import UsageTracker

from .deps import get_router, get_usage_tracker
from .main import create_app


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Create a mock provider gateway."""
    mock = AsyncMock()
    mock.generate.return_value = LLMResponse(
        text='{"overallScore": 81, "tags": ["python"]}',
        model="mock-model",
        provider="mock",
        tokens_in=100,
        tokens_out=50,
    )
    return mock


@pytest.fixture
def tracker() -> UsageTracker:
    return UsageTracker()


@pytest.fixture
def model_router(mock_gateway: AsyncMock, tracker: UsageTracker) -> ModelRouter:
    """Router with only the anthropic provider bound."""
    return ModelRouter(DEFAULT_CATALOG, {"anthropic": mock_gateway}, usage_sink=tracker)


@pytest.fixture
def client(model_router: ModelRouter, tracker: UsageTracker) -> Generator[TestClient, None, None]:
    """Create a test client with mocked dependencies."""
    app = create_app()

    app.dependency_overrides[get_router] = lambda: model_router
    app.dependency_overrides[get_usage_tracker] = lambda: tracker

    yield TestClient(app)

    app.dependency_overrides.clear()


def _sse_frames(body: str) -> list[tuple[str | None, str]]:
    frames = []
    for block in body.strip().split("\n\n"):
        event = None
        data = ""
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = line[len("data: "):]
        frames.append((event, data))
    return frames


# --- Health Tests ---


def test_health_endpoint(client: TestClient) -> None:
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "taskweave", "available_models": 2}


def test_health_degraded_without_providers(client: TestClient) -> None:
    """Test a router with no bindings reports degraded."""
    client.app.dependency_overrides[get_router] = lambda: ModelRouter(DEFAULT_CATALOG, {})

    data = client.get("/health").json()
    assert data["status"] == "degraded"
    assert data["available_models"] == 0


def test_api_info(client: TestClient) -> None:
    """Test API info endpoint."""
    data = client.get("/api").json()
    assert data["name"] == "TaskWeave API"
    assert data["docs"] == "/docs"


def test_request_id_header(client: TestClient) -> None:
    """Test that responses include request ID."""
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"
    assert "x-response-time-ms" in response.headers


def test_404_for_unknown_routes(client: TestClient) -> None:
    """Test 404 for non-existent routes."""
    assert client.get("/api/nonexistent").status_code == 404


# --- Model Tests ---


def test_list_models(client: TestClient) -> None:
    """Test availability follows bound providers."""
    models = {m["id"]: m for m in client.get("/api/models").json()}

    assert models["claude-opus-4"]["available"] is True
    assert models["gpt-4o"]["available"] is False
    assert models["claude-opus-4"]["provider"] == "anthropic"


def test_list_tasks(client: TestClient) -> None:
    """Test each task reports its current selection."""
    tasks = {t["task"]: t for t in client.get("/api/tasks").json()}

    assert tasks["architecture-planning"]["selected"] == "claude-opus-4"
    # gpt-4o primary, anthropic fallback
    assert tasks["ui-component-design"]["selected"] == "claude-sonnet-4"
    assert tasks["icon-generation"]["selected"] is None


def test_route_prompt(client: TestClient, mock_gateway: AsyncMock, tracker: UsageTracker) -> None:
    """Test direct routing returns usage and records it."""
    response = client.post("/api/route", json={"task": "code-review", "prompt": "Review this"})

    assert response.status_code == 200
    data = response.json()
    assert data["model_id"] == "claude-opus-4"
    assert data["tokens_used"] == 150
    assert data["cost"] == pytest.approx(150 / 1000 * 0.015)
    assert len(tracker) == 1
    mock_gateway.generate.assert_awaited_once()


def test_route_validation(client: TestClient) -> None:
    """Test empty prompts are rejected."""
    assert client.post("/api/route", json={"task": "code-review", "prompt": ""}).status_code == 422


def test_route_no_available_model(client: TestClient) -> None:
    """Test an unservable task maps to 503 with the error taxonomy."""
    response = client.post("/api/route", json={"task": "icon-generation", "prompt": "A rocket"})

    assert response.status_code == 503
    data = response.json()
    assert data["error"]["code"] == ErrorCode.ROUTING_NO_AVAILABLE_MODEL.value
    assert "request_id" in data


def test_route_provider_error(client: TestClient, mock_gateway: AsyncMock) -> None:
    """Test gateway errors pass through to the error mapping."""
    mock_gateway.generate.side_effect = LLMError("Rate limited", code=ErrorCode.LLM_RATE_LIMITED)

    response = client.post("/api/route", json={"task": "code-review", "prompt": "Review this"})
    assert response.status_code == 429
    assert response.headers["retry-after"] == "30"
    assert response.json()["error"]["code"] == "LLM_RATE_LIMITED"


# --- Generation Tests ---


def test_generate_stream(client: TestClient) -> None:
    """Test generation streams agent events and a final result."""
    response = client.post(
        "/api/generate/stream",
        json={"prompt": "A todo app", "config": {"name": "Todo", "database": "none"}},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert "x-pipeline-id" in response.headers

    frames = _sse_frames(response.text)
    events = [json.loads(data) for event, data in frames if event is None]
    assert events[0]["kind"] == "start"
    assert events[0]["agent_id"] == "agent-architect"
    assert {"kind", "step_id", "agent_id", "timestamp"} <= set(events[0])

    assert frames[-1][0] == "result"
    result = json.loads(frames[-1][1])
    assert result["success"] is True
    assert "package.json" in result["files"]


def test_generate_blocking(client: TestClient) -> None:
    """Test blocking generation returns the result."""
    response = client.post(
        "/api/generate",
        json={"prompt": "A todo app", "config": {"name": "Todo"}, "enable_parallel": False},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["dependencies"]["next"] == "14.0.0"


def test_generate_requires_config(client: TestClient) -> None:
    """Test missing project config is a validation error."""
    assert client.post("/api/generate", json={"prompt": "A todo app"}).status_code == 422


# --- Content Tests ---


def test_create_content(client: TestClient) -> None:
    """Test content creation over a single-provider router."""
    response = client.post(
        "/api/content/create",
        json={"spec": {"topic": "Async Python"}, "options": {"auto_seo": False}},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["quality"]["overall_score"] == 81
    assert data["tags"] == ["python"]


def test_create_content_stream(client: TestClient) -> None:
    """Test content events are attributed to content agents."""
    response = client.post("/api/content/create/stream", json={"spec": {"topic": "Async Python"}})

    frames = _sse_frames(response.text)
    agents = {json.loads(data)["agent_id"] for event, data in frames if event is None}
    assert {"agent-writer", "agent-reviewer"} <= agents
    assert frames[-1][0] == "result"


def test_analyze_content(client: TestClient) -> None:
    """Test analysis returns every section."""
    response = client.post("/api/content/analyze", json={"content": "Some text to analyze."})

    assert response.status_code == 200
    data = response.json()
    assert data["quality"]["overall_score"] == 81
    assert {"seo", "sentiment", "entities", "keywords", "tags", "readability"} <= set(data)


# --- Usage Tests ---


def test_usage_summary(client: TestClient) -> None:
    """Test routed calls show up in the usage summary."""
    client.post("/api/route", json={"task": "code-review", "prompt": "Review this"})
    client.post("/api/route", json={"task": "api-generation", "prompt": "Write routes"})

    data = client.get("/api/usage/summary").json()
    assert data["total_records"] == 2
    assert data["total_tokens"] == 300
    assert set(data["by_model"]) == {"claude-opus-4", "claude-sonnet-4"}

    records = client.get("/api/usage/records", params={"task": "code-review"}).json()
    assert [r["task"] for r in records] == ["code-review"]
