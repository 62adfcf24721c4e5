"""
Content Management Flow - Writing, review, NLP and SEO as step graphs.

create_content: write -> (review, tag, entities, sentiment) -> seo, where
seo runs only when the review clears the configured quality bar.
optimize_content: review and keyword extraction feed an improvement pass,
then SEO metadata and a second review.
analyze: every analysis as an independent step of one run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from taskweave.domains.pipeline import PipelineContext, PipelineScheduler, Step, StepStatus
from taskweave.domains.pipeline.models import PipelineResult

from .base import AgentOutput, FlowRun
from .content_agents import ContentWriterAgent, NLPAgent, QualityReviewerAgent, SEOAgent
from .content_models import (
    AnalysisOutput,
    ContentOptions,
    ContentOutput,
    ContentRequest,
    ContentSpec,
    EntityResult,
    ImprovedContent,
    KeywordResult,
    OptimizationOutput,
    OptimizationRequest,
    QualityReview,
    Readability,
    SEOAnalysis,
    SEOOptimization,
    SentimentResult,
    TagResult,
    WrittenContent,
)

if TYPE_CHECKING:
    from taskweave.domains.pipeline.scheduler import StepContext
    from taskweave.domains.routing.contracts import TaskRouter
    from taskweave.domains.routing.models import RoutingPreferences

logger = logging.getLogger(__name__)

__all__ = ["ContentManagementFlow", "quality_gate"]

EXCERPT_CHARS = 200


def quality_gate(min_score: int | None) -> Callable[[PipelineContext], bool]:
    """
    Condition for the seo step.

    Passes when no threshold is set or no review ran; otherwise the
    review's overall score must reach the threshold.
    """

    def condition(context: PipelineContext) -> bool:
        review: QualityReview | None = context.get("review")
        if min_score is None or review is None:
            return True
        return review.overall_score >= min_score

    return condition


def _excerpt(content: str) -> str:
    for paragraph in content.split("\n\n"):
        paragraph = paragraph.strip()
        if paragraph and not paragraph.startswith("#"):
            if len(paragraph) <= EXCERPT_CHARS:
                return paragraph
            return paragraph[:EXCERPT_CHARS].rsplit(" ", 1)[0] + "..."
    return ""


def _usage_totals(outputs: dict[str, Any]) -> tuple[int, float]:
    tokens = 0
    cost = 0.0
    for output in outputs.values():
        if isinstance(output, AgentOutput):
            tokens += output.tokens_used or 0
            cost += output.cost or 0.0
    return tokens, cost


class ContentManagementFlow:
    """
    Content creation, optimization and analysis.

    Example:
        flow = ContentManagementFlow(router, default_options=ContentOptions(min_quality_score=75))
        run = flow.create_content(ContentSpec(topic="Async Python", keywords=["asyncio"]))
        output = await run.collect()
        print(output.title, output.quality.overall_score if output.quality else None)
    """

    def __init__(
        self,
        router: TaskRouter,
        *,
        default_options: ContentOptions | None = None,
        brand_guidelines: str | None = None,
        preferences: RoutingPreferences | None = None,
    ) -> None:
        """
        Initialize flow.

        Args:
            router: Task router used by every agent
            default_options: Options that per-call options are layered over
            brand_guidelines: Passed to the writer with every spec
            preferences: Routing preferences applied to every call
        """
        self.default_options = default_options or ContentOptions()
        self.brand_guidelines = brand_guidelines
        self.writer = ContentWriterAgent(router, preferences)
        self.reviewer = QualityReviewerAgent(router, preferences)
        self.nlp = NLPAgent(router, preferences)
        self.seo = SEOAgent(router, preferences)

        self._optimize_scheduler = PipelineScheduler(
            self._optimize_steps(), name="content-optimization"
        )
        self._analysis_scheduler = PipelineScheduler(self._analysis_steps(), name="content-analysis")

    def resolve_options(self, options: ContentOptions | None = None) -> ContentOptions:
        """Layer explicitly set per-call options over the defaults."""
        if options is None:
            return self.default_options
        return self.default_options.model_copy(update=options.model_dump(exclude_unset=True))

    # --- Create ---

    def create_steps(self, options: ContentOptions) -> list[Step]:
        """Step graph for create_content under the given options."""
        steps = [Step(id="write", name="Write Content", operation=self._write)]
        if options.quality_check:
            steps.append(
                Step(id="review", name="Quality Review", dependencies=("write",), operation=self._review)
            )
        if options.auto_tag:
            steps.append(Step(id="tag", name="Auto Tagging", dependencies=("write",), operation=self._tag))
        if options.extract_entities:
            steps.append(
                Step(
                    id="entities",
                    name="Entity Extraction",
                    dependencies=("write",),
                    operation=self._entities,
                )
            )
        if options.analyze_sentiment:
            steps.append(
                Step(
                    id="sentiment",
                    name="Sentiment Analysis",
                    dependencies=("write",),
                    operation=self._sentiment,
                )
            )
        if options.auto_seo:
            steps.append(
                Step(
                    id="seo",
                    name="SEO Optimization",
                    dependencies=("write", "review") if options.quality_check else ("write",),
                    operation=self._seo,
                    condition=quality_gate(options.min_quality_score),
                )
            )
        return steps

    def create_content(
        self,
        spec: ContentSpec,
        options: ContentOptions | None = None,
        *,
        pipeline_id: str | None = None,
    ) -> FlowRun[ContentOutput]:
        """Start a create-content run; iterate the returned FlowRun for events."""
        resolved = self.resolve_options(options)
        request = ContentRequest(spec=spec, options=resolved)
        scheduler = PipelineScheduler(self.create_steps(resolved), name="content-creation")
        logger.info("Creating %s content on '%s'", spec.type.value, spec.topic)

        run = scheduler.execute(request, pipeline_id=pipeline_id)
        return FlowRun(
            run,
            {
                "write": self.writer.identity,
                "review": self.reviewer.identity,
                "tag": self.nlp.identity,
                "entities": self.nlp.identity,
                "sentiment": self.nlp.identity,
                "seo": self.seo.identity,
            },
            lambda result: self._build_content_output(result, request),
        )

    async def _write(self, request: ContentRequest, ctx: StepContext) -> WrittenContent:
        spec = request.spec
        ctx.progress(f"Writing {spec.type.value} about {spec.topic}", 5)
        written = await self.writer.write(
            spec, ctx, stream=request.options.stream, brand_guidelines=self.brand_guidelines
        )
        ctx.progress(f"Drafted {written.word_count} words", 100)
        return written

    async def _review(self, request: ContentRequest, ctx: StepContext) -> QualityReview:
        ctx.progress("Reviewing content quality", 10)
        review = await self.reviewer.review(ctx.outputs["write"].content, ctx)
        ctx.progress(f"Quality score {review.overall_score}", 100)
        return review

    async def _tag(self, request: ContentRequest, ctx: StepContext) -> TagResult:
        return await self.nlp.auto_tag(ctx.outputs["write"].content, ctx)

    async def _entities(self, request: ContentRequest, ctx: StepContext) -> EntityResult:
        return await self.nlp.extract_entities(ctx.outputs["write"].content, ctx)

    async def _sentiment(self, request: ContentRequest, ctx: StepContext) -> SentimentResult:
        return await self.nlp.analyze_sentiment(ctx.outputs["write"].content, ctx)

    async def _seo(self, request: ContentRequest, ctx: StepContext) -> SEOOptimization:
        spec = request.spec
        focus = request.options.focus_keyword or (spec.keywords[0] if spec.keywords else spec.topic)
        ctx.progress(f"Optimizing for '{focus}'", 10)
        return await self.seo.optimize(ctx.outputs["write"].content, focus, ctx)

    def _build_content_output(self, result: PipelineResult, request: ContentRequest) -> ContentOutput:
        outputs = result.outputs
        written: WrittenContent | None = outputs.get("write")
        review: QualityReview | None = outputs.get("review")
        seo: SEOOptimization | None = outputs.get("seo")
        tags: TagResult | None = outputs.get("tag")
        entities: EntityResult | None = outputs.get("entities")
        seo_step = result.step("seo")

        keywords = list(request.spec.keywords)
        if seo is not None and seo.focus_keywords:
            keywords = list(dict.fromkeys([*seo.focus_keywords, *seo.secondary_keywords]))

        tokens, cost = _usage_totals(outputs)
        content = written.content if written else ""
        return ContentOutput.from_pipeline(
            result,
            content=content,
            title=(seo.title if seo and seo.title else None) or (written.title if written else None),
            excerpt=_excerpt(content),
            meta_description=seo.meta_description if seo and seo.meta_description else None,
            slug=seo.slug if seo and seo.slug else None,
            tags=tags.tags if tags else [],
            categories=tags.categories if tags else [],
            keywords=keywords,
            entities=entities.entities if entities else [],
            sentiment=outputs.get("sentiment"),
            quality=review,
            seo=seo,
            seo_skipped=seo_step is not None and seo_step.status is StepStatus.SKIPPED,
            word_count=written.word_count if written else 0,
            reading_time=written.reading_time if written else 0,
            total_tokens=tokens,
            total_cost=cost,
        )

    # --- Optimize ---

    def _optimize_steps(self) -> list[Step]:
        return [
            Step(id="review-original", name="Review Original", operation=self._review_original),
            Step(id="extract-keywords", name="Keyword Extraction", operation=self._extract_keywords),
            Step(
                id="improve",
                name="Improve Content",
                dependencies=("review-original",),
                operation=self._improve,
            ),
            Step(
                id="seo",
                name="SEO Optimization",
                dependencies=("improve", "extract-keywords"),
                operation=self._optimize_seo,
            ),
            Step(
                id="review-improved",
                name="Review Improved",
                dependencies=("improve",),
                operation=self._review_improved,
            ),
        ]

    def optimize_content(
        self,
        content: str,
        options: ContentOptions | None = None,
        *,
        pipeline_id: str | None = None,
    ) -> FlowRun[OptimizationOutput]:
        """Start an optimize-content run over existing text."""
        request = OptimizationRequest(content=content, options=self.resolve_options(options))
        run = self._optimize_scheduler.execute(request, pipeline_id=pipeline_id)
        return FlowRun(
            run,
            {
                "review-original": self.reviewer.identity,
                "extract-keywords": self.nlp.identity,
                "improve": self.reviewer.identity,
                "seo": self.seo.identity,
                "review-improved": self.reviewer.identity,
            },
            lambda result: self._build_optimization_output(result, request),
        )

    async def _review_original(self, request: OptimizationRequest, ctx: StepContext) -> QualityReview:
        return await self.reviewer.review(request.content, ctx)

    async def _extract_keywords(self, request: OptimizationRequest, ctx: StepContext) -> KeywordResult:
        return await self.nlp.extract_keywords(request.content, ctx)

    async def _improve(self, request: OptimizationRequest, ctx: StepContext) -> ImprovedContent:
        improved = await self.reviewer.improve(
            request.content, ctx, review=ctx.outputs["review-original"]
        )
        ctx.progress(f"Applied {len(improved.changes)} change(s)", 100)
        return improved

    async def _optimize_seo(self, request: OptimizationRequest, ctx: StepContext) -> SEOOptimization:
        keywords: KeywordResult = ctx.outputs["extract-keywords"]
        focus = request.options.focus_keyword or (keywords.terms[0] if keywords.terms else "")
        return await self.seo.optimize(ctx.outputs["improve"].improved_content, focus, ctx)

    async def _review_improved(self, request: OptimizationRequest, ctx: StepContext) -> QualityReview:
        return await self.reviewer.review(ctx.outputs["improve"].improved_content, ctx)

    def _build_optimization_output(
        self, result: PipelineResult, request: OptimizationRequest
    ) -> OptimizationOutput:
        outputs = result.outputs
        original: QualityReview | None = outputs.get("review-original")
        improved: QualityReview | None = outputs.get("review-improved")
        rewrite: ImprovedContent | None = outputs.get("improve")

        improvement = 0
        if original is not None and improved is not None:
            improvement = improved.overall_score - original.overall_score

        return OptimizationOutput.from_pipeline(
            result,
            original_content=request.content,
            optimized_content=rewrite.improved_content if rewrite else request.content,
            seo=outputs.get("seo"),
            original_score=original.overall_score if original else None,
            improved_score=improved.overall_score if improved else None,
            quality_improvement=improvement,
            changes=[change.type for change in rewrite.changes] if rewrite else [],
        )

    # --- Analyze ---

    def _analysis_steps(self) -> list[Step]:
        return [
            Step(id="seo-analysis", name="SEO Analysis", operation=self._analyze_seo),
            Step(id="quality", name="Quality Review", operation=self._analyze_quality),
            Step(id="sentiment", name="Sentiment Analysis", operation=self._analyze_sentiment),
            Step(id="entities", name="Entity Extraction", operation=self._analyze_entities),
            Step(id="keywords", name="Keyword Extraction", operation=self._analyze_keywords),
            Step(id="tags", name="Auto Tagging", operation=self._analyze_tags),
            Step(id="readability", name="Readability", operation=self._analyze_readability),
        ]

    def analysis_run(self, content: str, *, pipeline_id: str | None = None) -> FlowRun[AnalysisOutput]:
        """Start an analysis run; ``analyze`` is the non-streaming form."""
        run = self._analysis_scheduler.execute(content, pipeline_id=pipeline_id)
        return FlowRun(
            run,
            {
                "seo-analysis": self.seo.identity,
                "quality": self.reviewer.identity,
                "sentiment": self.nlp.identity,
                "entities": self.nlp.identity,
                "keywords": self.nlp.identity,
                "tags": self.nlp.identity,
                "readability": self.reviewer.identity,
            },
            self._build_analysis_output,
        )

    async def analyze(self, content: str) -> AnalysisOutput:
        """Run every analysis concurrently over the content."""
        return await self.analysis_run(content).collect()

    async def _analyze_seo(self, content: str, ctx: StepContext) -> SEOAnalysis:
        return await self.seo.analyze(content, ctx)

    async def _analyze_quality(self, content: str, ctx: StepContext) -> QualityReview:
        return await self.reviewer.review(content, ctx)

    async def _analyze_sentiment(self, content: str, ctx: StepContext) -> SentimentResult:
        return await self.nlp.analyze_sentiment(content, ctx)

    async def _analyze_entities(self, content: str, ctx: StepContext) -> EntityResult:
        return await self.nlp.extract_entities(content, ctx)

    async def _analyze_keywords(self, content: str, ctx: StepContext) -> KeywordResult:
        return await self.nlp.extract_keywords(content, ctx)

    async def _analyze_tags(self, content: str, ctx: StepContext) -> TagResult:
        return await self.nlp.auto_tag(content, ctx)

    async def _analyze_readability(self, content: str, ctx: StepContext) -> Readability:
        return await self.reviewer.check_readability(content, ctx)

    def _build_analysis_output(self, result: PipelineResult) -> AnalysisOutput:
        outputs = result.outputs
        fields: dict[str, Any] = {}
        for step_id, field in (
            ("seo-analysis", "seo"),
            ("quality", "quality"),
            ("sentiment", "sentiment"),
            ("tags", "tags"),
            ("readability", "readability"),
        ):
            if step_id in outputs:
                fields[field] = outputs[step_id]
        if "entities" in outputs:
            fields["entities"] = outputs["entities"].entities
        if "keywords" in outputs:
            fields["keywords"] = outputs["keywords"].keywords
        return AnalysisOutput.from_pipeline(result, **fields)
