"""
App Generation Models - Data types for the app-generation flow.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .base import AgentOutput, AgentPayload, FlowResult

__all__ = [
    "Framework",
    "Database",
    "ProjectConfig",
    "AppRequest",
    "FileStructure",
    "ComponentPlan",
    "Architecture",
    "DatabaseSchema",
    "FileSet",
    "IntegrationReport",
    "ProjectManifest",
    "GenerationResult",
]


class Framework(str, Enum):
    """Target web framework."""

    NEXTJS = "nextjs"
    REACT = "react"
    VUE = "vue"
    SVELTE = "svelte"


class Database(str, Enum):
    """Target database; NONE skips schema generation."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    ORACLE = "oracle"
    NONE = "none"


class ProjectConfig(BaseModel):
    """Project settings for a generation run."""

    name: str = Field(..., min_length=1)
    framework: Framework = Framework.NEXTJS
    database: Database = Database.POSTGRESQL


class AppRequest(BaseModel):
    """Pipeline input of the app-generation flow."""

    prompt: str = Field(..., min_length=1)
    config: ProjectConfig


class FileStructure(AgentPayload):
    directories: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)


class ComponentPlan(AgentPayload):
    pages: list[str] = Field(default_factory=list)
    shared: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class Architecture(AgentOutput):
    """Architect's plan; an empty plan is the fallback for unusable replies."""

    file_structure: FileStructure = Field(default_factory=FileStructure)
    components: ComponentPlan = Field(default_factory=ComponentPlan)
    data_models: list[dict[str, Any]] = Field(default_factory=list)
    api_endpoints: list[dict[str, Any]] = Field(default_factory=list)
    state_management: dict[str, Any] = Field(default_factory=dict)
    integrations: list[str] = Field(default_factory=list)
    env_vars: list[str] = Field(default_factory=list)


class DatabaseSchema(AgentPayload):
    path: str
    content: str


class FileSet(AgentOutput):
    """Generated files keyed by project-relative path."""

    files: dict[str, str] = Field(default_factory=dict)
    schema_file: DatabaseSchema | None = None

    @property
    def all_files(self) -> dict[str, str]:
        """Generated files plus the schema file, if any."""
        files = dict(self.files)
        if self.schema_file is not None:
            files[self.schema_file.path] = self.schema_file.content
        return files


class IntegrationReport(AgentOutput):
    """Integrator's reconciled file set and review findings."""

    files: dict[str, str] = Field(default_factory=dict)
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ProjectManifest(BaseModel):
    """Static project files written by the config step."""

    files: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)


class GenerationResult(FlowResult):
    """Outcome of an app-generation run."""

    files: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    architecture: Architecture | None = None
    issues: list[str] = Field(default_factory=list)
