"""
App Agents - Specialist agents for full-stack app generation.

Architect plans, Backend and UI Designer write files from the plan,
Integrator reconciles the combined file set.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from .app_models import (
    Architecture,
    Database,
    DatabaseSchema,
    FileSet,
    IntegrationReport,
    ProjectConfig,
)
from .base import Agent, AgentIdentity

if TYPE_CHECKING:
    from taskweave.domains.pipeline.scheduler import StepContext

logger = logging.getLogger(__name__)

__all__ = [
    "ArchitectAgent",
    "BackendAgent",
    "UIDesignerAgent",
    "IntegratorAgent",
    "SCHEMA_PATH",
]

SCHEMA_PATH = "prisma/schema.prisma"

# Cap on how much of a large file set is echoed back into a prompt
_PROMPT_FILE_CHARS = 4000


def _plan_summary(architecture: Architecture) -> str:
    return json.dumps(architecture.model_dump(exclude={"model", "tokens_used", "cost"}), indent=2)


class ArchitectAgent(Agent):
    """Plans file layout, components, data models and endpoints."""

    identity = AgentIdentity(id="agent-architect", name="Architect")

    async def plan(
        self,
        prompt: str,
        config: ProjectConfig,
        ctx: StepContext | None = None,
    ) -> Architecture:
        result = await self._route("architecture-planning", self._build_prompt(prompt, config), ctx)
        return self._parse(result, Architecture, Architecture(), ctx, "architecture plan")

    def _build_prompt(self, prompt: str, config: ProjectConfig) -> str:
        return f"""You are a senior software architect planning a {config.framework.value} application.

Project: {config.name}
Database: {config.database.value}
Requirements: {prompt}

Respond with a single JSON object containing:
- fileStructure: {{"directories": [...], "files": [...]}}
- components: {{"pages": [...], "shared": [...], "features": [...]}}
- dataModels: list of {{"name", "fields", "relations"}}
- apiEndpoints: list of {{"method", "path", "description"}}
- stateManagement: object describing client state
- integrations: list of third-party services
- envVars: list of required environment variable names"""


class BackendAgent(Agent):
    """Writes the database schema and API routes."""

    identity = AgentIdentity(id="agent-backend", name="Backend")

    async def generate_schema(
        self,
        prompt: str,
        architecture: Architecture,
        database: Database,
        ctx: StepContext | None = None,
    ) -> DatabaseSchema:
        """Prisma schema for the planned data models."""
        schema_prompt = f"""Write a Prisma schema for a {database.value} database.

Requirements: {prompt}
Data models:
{json.dumps(architecture.data_models, indent=2)}

Return only the schema file contents."""

        result = await self._route("database-schema", schema_prompt, ctx)
        content = result.response.strip()
        if content.startswith("```"):
            content = content.split("\n", 1)[-1].rsplit("```", 1)[0].strip()
        return DatabaseSchema(path=SCHEMA_PATH, content=content)

    async def generate(
        self,
        prompt: str,
        architecture: Architecture,
        schema: DatabaseSchema | None = None,
        ctx: StepContext | None = None,
    ) -> FileSet:
        """API route files keyed by path."""
        schema_text = schema.content if schema else "No database"
        api_prompt = f"""You are a backend engineer implementing API routes.

Requirements: {prompt}
Architecture:
{_plan_summary(architecture)}
Database schema:
{schema_text}

Respond with a JSON object mapping each file path to its full source code."""

        result = await self._route("api-generation", api_prompt, ctx)
        files = self._parse(result, dict[str, str], {}, ctx, "API files")
        return FileSet(
            files=files,
            schema_file=schema,
            model=result.model_id,
            tokens_used=result.tokens_used,
            cost=result.cost,
        )


class UIDesignerAgent(Agent):
    """Writes pages and components."""

    identity = AgentIdentity(id="agent-ui-designer", name="UI Designer")

    async def generate(
        self,
        prompt: str,
        architecture: Architecture,
        backend: FileSet | None = None,
        ctx: StepContext | None = None,
    ) -> FileSet:
        """
        UI component files keyed by path.

        When backend files are passed in (sequential mode), their paths are
        listed so the UI can call the real routes.
        """
        backend_note = ""
        if backend is not None and backend.files:
            backend_note = "\nExisting API files:\n" + "\n".join(sorted(backend.files))

        ui_prompt = f"""You are a UI designer building React components with Tailwind CSS.

Requirements: {prompt}
Components to build:
{json.dumps(architecture.components.model_dump(), indent=2)}{backend_note}

Respond with a JSON object mapping each file path to its full source code."""

        result = await self._route("ui-component-design", ui_prompt, ctx)
        files = self._parse(result, dict[str, str], {}, ctx, "UI files")
        return FileSet(
            files=files,
            model=result.model_id,
            tokens_used=result.tokens_used,
            cost=result.cost,
        )


class IntegratorAgent(Agent):
    """Reviews the combined files and fixes mismatched imports and types."""

    identity = AgentIdentity(id="agent-integrator", name="Integrator")

    async def assemble(
        self,
        config: ProjectConfig,
        files: dict[str, str],
        ctx: StepContext | None = None,
    ) -> IntegrationReport:
        """
        Reconcile a file set.

        Files returned by the model replace their originals; files it
        leaves out are kept as they were.
        """
        result = await self._route("code-review", self._build_prompt(config, files), ctx)
        report = self._parse(result, IntegrationReport, IntegrationReport(), ctx, "integration report")
        return report.model_copy(update={"files": {**files, **report.files}})

    def _build_prompt(self, config: ProjectConfig, files: dict[str, str]) -> str:
        listing = "\n\n".join(
            f"// {path}\n{content[:_PROMPT_FILE_CHARS]}" for path, content in sorted(files.items())
        )
        return f"""You are integrating a generated {config.framework.value} project named {config.name}.

Check that imports resolve, types agree between API routes and UI code,
and nothing required is missing. Fix what you can.

Files:
{listing}

Respond with a JSON object:
{{"files": {{path: corrected source}}, "issues": [...], "warnings": [...]}}"""
