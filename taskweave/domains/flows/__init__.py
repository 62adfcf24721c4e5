"""
Flows Domain - Agent-driven step graphs for app generation and content.

Usage:
    from taskweave.domains.flows import AppGenerationFlow, ProjectConfig

    flow = AppGenerationFlow(router)
    run = flow.generate("A recipe sharing site", ProjectConfig(name="Recipes"))
    async for event in run:
        print(event.to_wire())
    result = run.result
"""

from .app_agents import ArchitectAgent, BackendAgent, IntegratorAgent, UIDesignerAgent
from .app_generation import AppGenerationFlow, build_project_manifest
from .app_models import (
    Architecture,
    Database,
    FileSet,
    Framework,
    GenerationResult,
    IntegrationReport,
    ProjectConfig,
    ProjectManifest,
)
from .base import Agent, AgentIdentity, AgentOutput, FlowResult, FlowRun
from .content_agents import ContentWriterAgent, NLPAgent, QualityReviewerAgent, SEOAgent
from .content_management import ContentManagementFlow, quality_gate
from .content_models import (
    AnalysisOutput,
    ContentLength,
    ContentOptions,
    ContentOutput,
    ContentSpec,
    ContentType,
    OptimizationOutput,
    QualityReview,
    SEOAnalysis,
    SEOOptimization,
    Tone,
)
from .parsing import extract_json, parse_agent_json

__all__ = [
    # Plumbing
    "Agent",
    "AgentIdentity",
    "AgentOutput",
    "FlowResult",
    "FlowRun",
    "extract_json",
    "parse_agent_json",
    # App generation
    "AppGenerationFlow",
    "build_project_manifest",
    "ArchitectAgent",
    "BackendAgent",
    "UIDesignerAgent",
    "IntegratorAgent",
    "Framework",
    "Database",
    "ProjectConfig",
    "Architecture",
    "FileSet",
    "IntegrationReport",
    "ProjectManifest",
    "GenerationResult",
    # Content
    "ContentManagementFlow",
    "quality_gate",
    "ContentWriterAgent",
    "QualityReviewerAgent",
    "NLPAgent",
    "SEOAgent",
    "ContentType",
    "Tone",
    "ContentLength",
    "ContentSpec",
    "ContentOptions",
    "ContentOutput",
    "QualityReview",
    "SEOOptimization",
    "SEOAnalysis",
    "OptimizationOutput",
    "AnalysisOutput",
]
