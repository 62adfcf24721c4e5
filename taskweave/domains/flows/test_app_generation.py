"""
Tests for the app-generation flow.
"""

from __future__ import annotations

import json

import pytest

from taskweave.domains.pipeline import AgentEvent, AgentEventKind, StepStatus

from .app_agents import SCHEMA_PATH
from .app_generation import AppGenerationFlow, build_project_manifest
from .app_models import Database, ProjectConfig

ARCHITECTURE = json.dumps(
    {
        "fileStructure": {"directories": ["app"], "files": ["app/page.tsx"]},
        "components": {"pages": ["Home"], "shared": ["Button"]},
        "dataModels": [{"name": "Todo", "fields": ["id", "title"]}],
        "apiEndpoints": [{"method": "GET", "path": "/api/todos"}],
    }
)
BACKEND_FILES = {"app/api/todos/route.ts": "export async function GET() {}"}
UI_FILES = {"app/page.tsx": "export default function Home() {}"}
SCHEMA = "model Todo {\n  id Int @id\n}"


def _replies(**overrides) -> dict:
    replies = {
        "architecture-planning": ARCHITECTURE,
        "database-schema": f"```prisma\n{SCHEMA}\n```",
        "api-generation": json.dumps(BACKEND_FILES),
        "ui-component-design": f"```json\n{json.dumps(UI_FILES)}\n```",
        "code-review": json.dumps({"files": {}, "issues": ["No error boundary"]}),
    }
    replies.update(overrides)
    return replies


@pytest.fixture
def config() -> ProjectConfig:
    return ProjectConfig(name="Todo App")


async def _drain(run) -> list[AgentEvent]:
    return [event async for event in run]


def _index(events: list[AgentEvent], step_id: str, kind: AgentEventKind) -> int:
    return next(i for i, e in enumerate(events) if e.step_id == step_id and e.kind is kind)


# --- Run Tests ---


async def test_generate_produces_project(make_router, config: ProjectConfig) -> None:
    """Test a full run merges generated and static files."""
    router = make_router(_replies())
    run = AppGenerationFlow(router).generate("A todo app", config)
    await _drain(run)
    result = run.result

    assert result.success
    assert result.error is None
    assert result.files["app/api/todos/route.ts"] == BACKEND_FILES["app/api/todos/route.ts"]
    assert result.files["app/page.tsx"] == UI_FILES["app/page.tsx"]
    assert result.files[SCHEMA_PATH] == SCHEMA
    assert {"package.json", "tsconfig.json", ".env.example"} <= set(result.files)
    assert result.dependencies["next"] == "14.0.0"
    assert result.issues == ["No error boundary"]
    assert result.architecture is not None
    assert result.architecture.data_models[0]["name"] == "Todo"
    assert all(step.status is StepStatus.COMPLETE for step in result.steps)


async def test_backend_and_ui_run_concurrently(make_router, config: ProjectConfig) -> None:
    """Test both generators start before either completes."""
    events = await _drain(AppGenerationFlow(make_router(_replies())).generate("A todo app", config))

    assert _index(events, "architecture", AgentEventKind.COMPLETE) < _index(
        events, "backend", AgentEventKind.START
    )
    assert _index(events, "ui", AgentEventKind.START) < _index(
        events, "backend", AgentEventKind.COMPLETE
    )
    assert _index(events, "backend", AgentEventKind.COMPLETE) < _index(
        events, "integration", AgentEventKind.START
    )
    assert _index(events, "ui", AgentEventKind.COMPLETE) < _index(
        events, "integration", AgentEventKind.START
    )


async def test_sequential_mode(make_router, config: ProjectConfig) -> None:
    """Test ui waits for backend and sees its files when parallelism is off."""
    router = make_router(_replies())
    flow = AppGenerationFlow(router, enable_parallel=False)
    events = await _drain(flow.generate("A todo app", config))

    assert _index(events, "backend", AgentEventKind.COMPLETE) < _index(
        events, "ui", AgentEventKind.START
    )
    assert "app/api/todos/route.ts" in router.prompts_for("ui-component-design")[0]


async def test_events_attributed_to_agents(make_router, config: ProjectConfig) -> None:
    """Test step events carry the owning agent's identity."""
    events = await _drain(AppGenerationFlow(make_router(_replies())).generate("A todo app", config))

    by_step = {e.step_id: (e.agent_id, e.agent_name) for e in events}
    assert by_step["architecture"] == ("agent-architect", "Architect")
    assert by_step["backend"] == ("agent-backend", "Backend")
    assert by_step["ui"] == ("agent-ui-designer", "UI Designer")
    assert by_step["integration"] == ("agent-integrator", "Integrator")
    assert by_step["config"] == ("agent-orchestrator", "Orchestrator")


async def test_collaboration_events(make_router, config: ProjectConfig) -> None:
    """Test hand-offs between agents are announced."""
    events = await _drain(AppGenerationFlow(make_router(_replies())).generate("A todo app", config))

    handoffs = [
        (e.agent_id, e.target_agent, e.message)
        for e in events
        if e.kind is AgentEventKind.COLLABORATION
    ]
    assert ("agent-architect", "agent-backend", "Sending architecture to Backend") in handoffs
    assert ("agent-architect", "agent-ui-designer", "Sending architecture to UI Designer") in handoffs
    assert ("agent-backend", "agent-integrator", "Sending files to Integrator") in handoffs
    assert ("agent-ui-designer", "agent-integrator", "Sending files to Integrator") in handoffs


async def test_schema_file_event(make_router, config: ProjectConfig) -> None:
    """Test the schema is emitted as a generated file."""
    events = await _drain(AppGenerationFlow(make_router(_replies())).generate("A todo app", config))

    schema_events = [e for e in events if e.file_path == SCHEMA_PATH]
    assert len(schema_events) == 1
    assert schema_events[0].kind is AgentEventKind.FILE_GENERATED
    assert schema_events[0].file_content == SCHEMA


async def test_no_schema_without_database(make_router) -> None:
    """Test database NONE skips schema generation."""
    router = make_router(_replies())
    run = AppGenerationFlow(router).generate(
        "A static landing page", ProjectConfig(name="Landing", database=Database.NONE)
    )
    await run.collect()

    assert "database-schema" not in router.tasks()
    assert SCHEMA_PATH not in run.result.files


async def test_integrator_fixes_are_emitted(make_router, config: ProjectConfig) -> None:
    """Test files changed by the integrator replace the originals."""
    fixed = {**BACKEND_FILES, **UI_FILES, "app/page.tsx": "export default function Home() { return null }"}
    router = make_router(_replies(**{"code-review": json.dumps({"files": fixed})}))
    run = AppGenerationFlow(router).generate("A todo app", config)
    events = await _drain(run)

    integration_files = [
        e.file_path
        for e in events
        if e.step_id == "integration" and e.kind is AgentEventKind.FILE_GENERATED
    ]
    assert integration_files == ["app/page.tsx"]
    assert run.result.files["app/page.tsx"] == fixed["app/page.tsx"]


async def test_models_used(make_router, config: ProjectConfig) -> None:
    """Test the primary model of each task is recorded once."""
    run = AppGenerationFlow(make_router(_replies())).generate("A todo app", config)
    result = await run.collect()

    assert "claude-opus-4" in result.models_used
    assert len(result.models_used) == len(set(result.models_used))


async def test_fallback_model_emits_switch(make_router, config: ProjectConfig) -> None:
    """Test a non-primary selection is surfaced as a model-switch event."""
    router = make_router(_replies(), selected={"api-generation": "gpt-4-turbo"})
    run = AppGenerationFlow(router).generate("A todo app", config)
    events = await _drain(run)

    switches = [e for e in events if e.kind is AgentEventKind.MODEL_SWITCH]
    assert [(e.step_id, e.model) for e in switches] == [("backend", "gpt-4-turbo")]
    assert "gpt-4-turbo" in run.result.models_used


async def test_cancel_event_reaches_router(make_router, config: ProjectConfig) -> None:
    """Test every model call receives the run's cancellation signal."""
    router = make_router(_replies())
    await AppGenerationFlow(router).generate("A todo app", config).collect()

    assert router.cancels
    assert all(cancel is not None for cancel in router.cancels)
    assert len({id(cancel) for cancel in router.cancels}) == 1


# --- Degradation Tests ---


async def test_malformed_architecture_degrades(make_router, config: ProjectConfig) -> None:
    """Test an unusable plan falls back to an empty one with a warning."""
    router = make_router(_replies(**{"architecture-planning": "I'd suggest a monorepo."}))
    run = AppGenerationFlow(router).generate("A todo app", config)
    events = await _drain(run)
    result = run.result

    assert result.success
    assert result.architecture is not None
    assert result.architecture.data_models == []
    assert [w.step_id for w in result.warnings] == ["architecture"]
    assert any(e.warning and e.step_id == "architecture" for e in events)


async def test_step_failure_keeps_partial_files(make_router, config: ProjectConfig) -> None:
    """Test a failing generator aborts downstream steps but keeps sibling output."""
    router = make_router(_replies(**{"api-generation": RuntimeError("rate limited")}))
    run = AppGenerationFlow(router).generate("A todo app", config)
    events = await _drain(run)
    result = run.result

    assert not result.success
    assert result.error == "Step 'backend' failed: rate limited"
    assert result.files["app/page.tsx"] == UI_FILES["app/page.tsx"]
    assert "package.json" not in result.files
    statuses = {step.id: step.status for step in result.steps}
    assert statuses["backend"] is StepStatus.FAILED
    assert statuses["ui"] is StepStatus.COMPLETE
    assert statuses["integration"] is StepStatus.PENDING
    assert not any(e.step_id == "integration" for e in events)


async def test_abandoned_run(make_router, config: ProjectConfig) -> None:
    """Test an observer leaving early still yields an inspectable result."""
    run = AppGenerationFlow(make_router(_replies())).generate("A todo app", config)
    events = run.__aiter__()
    first = await events.__anext__()
    await events.aclose()

    assert first.kind is AgentEventKind.START
    assert run.done
    assert not run.result.success
    assert run.result.error == "Pipeline run abandoned by observer"


async def test_aclose_after_break(make_router, config: ProjectConfig) -> None:
    """Test closing the flow run after a break records abandonment at once."""
    run = AppGenerationFlow(make_router(_replies())).generate("A todo app", config)
    async for event in run:
        assert event.kind is AgentEventKind.START
        break

    await run.aclose()

    assert run.done
    assert run.result.error == "Pipeline run abandoned by observer"


async def test_result_before_finish(make_router, config: ProjectConfig) -> None:
    """Test reading the result early is an error."""
    run = AppGenerationFlow(make_router(_replies())).generate("A todo app", config)
    with pytest.raises(RuntimeError):
        run.result


# --- Manifest Tests ---


def test_project_manifest() -> None:
    """Test static project files."""
    manifest = build_project_manifest(ProjectConfig(name="My Cool App"), {"zod": "^3.22.0"})
    package = json.loads(manifest.files["package.json"])

    assert package["name"] == "my-cool-app"
    assert package["version"] == "0.1.0"
    assert package["scripts"]["db:push"] == "prisma db push"
    assert package["dependencies"]["zod"] == "^3.22.0"
    assert package["devDependencies"]["typescript"] == "^5"
    assert json.loads(manifest.files["tsconfig.json"])["compilerOptions"]["strict"] is True
    assert "DATABASE_URL" in manifest.files[".env.example"]
