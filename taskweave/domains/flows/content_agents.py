"""
Content Agents - Writing, review, NLP and SEO agents.

Each method routes one task and parses the reply. Unusable replies
degrade to neutral defaults so a single bad answer never fails a run.
"""

from __future__ import annotations

import logging
import math
import re
from typing import TYPE_CHECKING

from .base import Agent, AgentIdentity
from .content_models import (
    ContentLength,
    ContentSpec,
    Entity,
    EntityResult,
    ImprovedContent,
    Keyword,
    KeywordResult,
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

logger = logging.getLogger(__name__)

__all__ = [
    "ContentWriterAgent",
    "QualityReviewerAgent",
    "NLPAgent",
    "SEOAgent",
    "count_words",
    "reading_time",
]

WORDS_PER_MINUTE = 200

TARGET_WORDS = {
    ContentLength.SHORT: 300,
    ContentLength.MEDIUM: 800,
    ContentLength.LONG: 1500,
}

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def count_words(text: str) -> int:
    return len(text.split())


def reading_time(word_count: int) -> int:
    """Minutes to read at 200 words per minute, rounded up."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


class ContentWriterAgent(Agent):
    """Drafts content."""

    identity = AgentIdentity(id="agent-writer", name="Content Writer")

    async def write(
        self,
        spec: ContentSpec,
        ctx: StepContext | None = None,
        *,
        stream: bool = False,
        brand_guidelines: str | None = None,
    ) -> WrittenContent:
        """
        Write content for a spec.

        With ``stream`` the draft is forwarded as token-chunk events while
        it is generated; token usage is then unknown.
        """
        prompt = self._build_prompt(spec, brand_guidelines)
        if stream:
            model_id, text = await self._stream("content-writing", prompt, ctx)
            tokens_used = cost = None
        else:
            result = await self._route("content-writing", prompt, ctx)
            model_id, text = result.model_id, result.response
            tokens_used, cost = result.tokens_used, result.cost

        text = text.strip()
        heading = _HEADING_RE.search(text)
        words = count_words(text)
        return WrittenContent(
            content=text,
            title=heading.group(1).strip() if heading else None,
            word_count=words,
            reading_time=reading_time(words),
            model=model_id,
            tokens_used=tokens_used,
            cost=cost,
        )

    def _build_prompt(self, spec: ContentSpec, brand_guidelines: str | None) -> str:
        if spec.length is ContentLength.CUSTOM and spec.custom_word_count:
            target = spec.custom_word_count
        else:
            target = TARGET_WORDS.get(spec.length, TARGET_WORDS[ContentLength.MEDIUM])

        lines = [
            f"Write a {spec.type.value} about: {spec.topic}",
            "",
            f"Tone: {spec.tone.value}",
            f"Target length: about {target} words",
        ]
        if spec.audience:
            lines.append(f"Audience: {spec.audience}")
        if spec.keywords:
            lines.append(f"Work in these keywords naturally: {', '.join(spec.keywords)}")
        if spec.outline:
            lines.append("Follow this outline:")
            lines.extend(f"- {section}" for section in spec.outline)
        if spec.style:
            lines.append(f"Style: {spec.style}")
        if spec.context:
            lines.append(f"Background: {spec.context}")
        if brand_guidelines:
            lines.append(f"Brand guidelines: {brand_guidelines}")
        lines += ["", "Use markdown and start with a '# ' title line."]
        return "\n".join(lines)


class QualityReviewerAgent(Agent):
    """Scores, improves and grades content."""

    identity = AgentIdentity(id="agent-reviewer", name="Quality Reviewer")

    async def review(self, content: str, ctx: StepContext | None = None) -> QualityReview:
        prompt = f"""Review the quality of this content.

{content}

Respond with JSON:
{{"overallScore": 0-100,
  "scores": {{"grammar", "clarity", "engagement", "accuracy", "structure", "seo"}} each 0-100,
  "issues": [{{"type", "severity", "description", "location", "suggestion"}}],
  "strengths": [...], "suggestions": [...]}}"""
        result = await self._route("quality-review", prompt, ctx)
        fallback = QualityReview(suggestions=["Unable to complete full review"])
        return self._parse(result, QualityReview, fallback, ctx, "quality review")

    async def improve(
        self,
        content: str,
        ctx: StepContext | None = None,
        *,
        focus: str = "all",
        review: QualityReview | None = None,
    ) -> ImprovedContent:
        """Improved content plus a list of changes; the original on a bad reply."""
        findings = ""
        if review is not None and (review.issues or review.suggestions):
            findings = "\nKnown problems:\n" + "\n".join(
                [f"- {issue.description}" for issue in review.issues]
                + [f"- {suggestion}" for suggestion in review.suggestions]
            )

        prompt = f"""Improve this content, focusing on: {focus}.{findings}

{content}

Respond with JSON:
{{"improvedContent": "...", "changes": [{{"type", "original", "improved", "reason"}}]}}"""
        result = await self._route("content-rewriting", prompt, ctx)
        return self._parse(
            result, ImprovedContent, ImprovedContent(improved_content=content), ctx, "improvement"
        )

    async def check_readability(self, content: str, ctx: StepContext | None = None) -> Readability:
        prompt = f"""Assess the readability of this content.

{content}

Respond with JSON:
{{"score": 0-100, "grade": "reading level", "avgSentenceLength": number, "suggestions": [...]}}"""
        result = await self._route("quality-review", prompt, ctx)
        return self._parse(result, Readability, Readability(), ctx, "readability report")


class NLPAgent(Agent):
    """Tagging, entity, sentiment and keyword extraction."""

    identity = AgentIdentity(id="agent-nlp", name="NLP Analyst")

    async def auto_tag(self, content: str, ctx: StepContext | None = None) -> TagResult:
        prompt = f"""Suggest tags, categories and topics for this content.

{content}

Respond with JSON:
{{"tags": [...], "categories": [...], "topics": [...], "confidence": 0-1}}"""
        result = await self._route("auto-tagging", prompt, ctx)
        return self._parse(result, TagResult, TagResult(), ctx, "tags")

    async def extract_entities(self, content: str, ctx: StepContext | None = None) -> EntityResult:
        prompt = f"""Extract named entities (people, organizations, places, products, concepts).

{content}

Respond with a JSON array of {{"text", "type", "relevance": 0-1, "mentions"}}."""
        result = await self._route("entity-extraction", prompt, ctx)
        parsed = self._parse(
            result, list[Entity] | EntityResult, EntityResult(), ctx, "entity list"
        )
        if isinstance(parsed, list):
            parsed = EntityResult(
                entities=parsed,
                model=result.model_id,
                tokens_used=result.tokens_used,
                cost=result.cost,
            )
        return parsed

    async def analyze_sentiment(
        self, content: str, ctx: StepContext | None = None
    ) -> SentimentResult:
        prompt = f"""Analyze the sentiment of this content.

{content}

Respond with JSON:
{{"overall": "positive|negative|neutral|mixed", "score": -1 to 1, "magnitude": number,
  "emotions": {{"joy", "sadness", "anger", "fear", "surprise"}} each 0-1}}"""
        result = await self._route("sentiment-analysis", prompt, ctx)
        return self._parse(result, SentimentResult, SentimentResult(), ctx, "sentiment")

    async def extract_keywords(
        self,
        content: str,
        ctx: StepContext | None = None,
        *,
        limit: int = 10,
    ) -> KeywordResult:
        prompt = f"""Extract the {limit} most important keywords from this content.

{content}

Respond with a JSON array of {{"keyword", "relevance": 0-1, "frequency"}}."""
        result = await self._route("keyword-extraction", prompt, ctx)
        parsed = self._parse(
            result, list[Keyword] | KeywordResult, KeywordResult(), ctx, "keyword list"
        )
        if isinstance(parsed, list):
            parsed = KeywordResult(
                keywords=parsed[:limit],
                model=result.model_id,
                tokens_used=result.tokens_used,
                cost=result.cost,
            )
        return parsed


class SEOAgent(Agent):
    """Search metadata and SEO audits."""

    identity = AgentIdentity(id="agent-seo", name="SEO Specialist")

    async def optimize(
        self,
        content: str,
        focus_keyword: str = "",
        ctx: StepContext | None = None,
    ) -> SEOOptimization:
        prompt = f"""Produce SEO metadata for this content.
Focus keyword: {focus_keyword or "choose the best one"}

{content}

Respond with JSON:
{{"title": "under 60 chars", "metaDescription": "under 160 chars", "h1": "...", "slug": "...",
  "focusKeywords": [...], "secondaryKeywords": [...], "internalLinkSuggestions": [...]}}"""
        result = await self._route("seo-optimization", prompt, ctx)
        fallback = SEOOptimization(focus_keywords=[focus_keyword] if focus_keyword else [])
        return self._parse(result, SEOOptimization, fallback, ctx, "SEO metadata")

    async def analyze(self, content: str, ctx: StepContext | None = None) -> SEOAnalysis:
        prompt = f"""Audit this content for SEO.

{content}

Respond with JSON:
{{"score": 0-100, "issues": [...], "suggestions": [...],
  "readability": {{"score": 0-100, "grade": "..."}}}}"""
        result = await self._route("seo-optimization", prompt, ctx)
        fallback = SEOAnalysis(suggestions=["Unable to fully analyze content"])
        return self._parse(result, SEOAnalysis, fallback, ctx, "SEO analysis")
