"""
Content Models - Data types for the content-management flow.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .base import AgentOutput, AgentPayload, FlowResult

__all__ = [
    "ContentType",
    "Tone",
    "ContentLength",
    "ContentSpec",
    "ContentOptions",
    "WrittenContent",
    "QualityScores",
    "QualityIssue",
    "QualityReview",
    "ContentChange",
    "ImprovedContent",
    "Readability",
    "TagResult",
    "Entity",
    "EntityResult",
    "Emotions",
    "SentimentResult",
    "Keyword",
    "KeywordResult",
    "SEOOptimization",
    "SEOAnalysis",
    "ContentRequest",
    "ContentOutput",
    "OptimizationRequest",
    "OptimizationOutput",
    "AnalysisOutput",
]


class ContentType(str, Enum):
    ARTICLE = "article"
    BLOG = "blog"
    DOCUMENTATION = "documentation"
    EMAIL = "email"
    SOCIAL = "social"
    PRODUCT = "product"
    LANDING = "landing"
    TECHNICAL = "technical"


class Tone(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    ACADEMIC = "academic"
    CONVERSATIONAL = "conversational"
    PERSUASIVE = "persuasive"
    INFORMATIVE = "informative"


class ContentLength(str, Enum):
    """Target length; CUSTOM uses ContentSpec.custom_word_count."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    CUSTOM = "custom"


class ContentSpec(BaseModel):
    """What to write."""

    type: ContentType = ContentType.ARTICLE
    topic: str = Field(..., min_length=1)
    tone: Tone = Tone.PROFESSIONAL
    length: ContentLength = ContentLength.MEDIUM
    custom_word_count: int | None = Field(default=None, gt=0)
    keywords: list[str] = Field(default_factory=list)
    audience: str | None = None
    outline: list[str] = Field(default_factory=list)
    context: str | None = None
    style: str | None = None


class ContentOptions(BaseModel):
    """Per-run toggles for the content flows."""

    quality_check: bool = True
    auto_tag: bool = True
    auto_seo: bool = True
    extract_entities: bool = False
    analyze_sentiment: bool = False
    min_quality_score: int | None = Field(default=None, ge=0, le=100)
    focus_keyword: str | None = None
    stream: bool = False  # Writer emits token-chunk events


# --- Agent replies ---


class WrittenContent(AgentOutput):
    content: str
    title: str | None = None
    word_count: int = 0
    reading_time: int = 0  # Minutes


class QualityScores(AgentPayload):
    grammar: int = Field(default=70, ge=0, le=100)
    clarity: int = Field(default=70, ge=0, le=100)
    engagement: int = Field(default=70, ge=0, le=100)
    accuracy: int = Field(default=70, ge=0, le=100)
    structure: int = Field(default=70, ge=0, le=100)
    seo: int = Field(default=70, ge=0, le=100)


class QualityIssue(AgentPayload):
    type: str = "general"
    severity: str = "minor"
    description: str = ""
    location: str | None = None
    suggestion: str | None = None


class QualityReview(AgentOutput):
    overall_score: int = Field(default=70, ge=0, le=100)
    scores: QualityScores = Field(default_factory=QualityScores)
    issues: list[QualityIssue] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class ContentChange(AgentPayload):
    type: str
    original: str = ""
    improved: str = ""
    reason: str = ""


class ImprovedContent(AgentOutput):
    improved_content: str
    changes: list[ContentChange] = Field(default_factory=list)


class Readability(AgentOutput):
    score: int = Field(default=70, ge=0, le=100)
    grade: str = "Unknown"
    avg_sentence_length: float | None = None
    suggestions: list[str] = Field(default_factory=list)


class TagResult(AgentOutput):
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class Entity(AgentPayload):
    text: str
    type: str = "other"
    relevance: float = 0.0
    mentions: int = 1


class EntityResult(AgentOutput):
    entities: list[Entity] = Field(default_factory=list)


class Emotions(AgentPayload):
    joy: float = 0.0
    sadness: float = 0.0
    anger: float = 0.0
    fear: float = 0.0
    surprise: float = 0.0


class SentimentResult(AgentOutput):
    overall: str = "neutral"  # positive | negative | neutral | mixed
    score: float = Field(default=0.0, ge=-1.0, le=1.0)
    magnitude: float = Field(default=0.0, ge=0.0)
    emotions: Emotions = Field(default_factory=Emotions)


class Keyword(AgentPayload):
    keyword: str
    relevance: float = 0.0
    frequency: int = 0


class KeywordResult(AgentOutput):
    keywords: list[Keyword] = Field(default_factory=list)

    @property
    def terms(self) -> list[str]:
        return [k.keyword for k in self.keywords]


class SEOOptimization(AgentOutput):
    title: str = ""
    meta_description: str = ""
    h1: str = ""
    slug: str = ""
    focus_keywords: list[str] = Field(default_factory=list)
    secondary_keywords: list[str] = Field(default_factory=list)
    internal_link_suggestions: list[str] = Field(default_factory=list)


class SEOAnalysis(AgentOutput):
    score: int = Field(default=50, ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    readability: Readability = Field(default_factory=Readability)


# --- Flow results ---


class ContentOutput(FlowResult):
    """Outcome of a create-content run."""

    content: str = ""
    title: str | None = None
    excerpt: str = ""
    meta_description: str | None = None
    slug: str | None = None
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    sentiment: SentimentResult | None = None
    quality: QualityReview | None = None
    seo: SEOOptimization | None = None
    seo_skipped: bool = False
    word_count: int = 0
    reading_time: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0  # USD, calls with known usage only


class ContentRequest(BaseModel):
    """Pipeline input of the create-content flow."""

    spec: ContentSpec
    options: ContentOptions = Field(default_factory=ContentOptions)


class OptimizationRequest(BaseModel):
    """Pipeline input of the optimize-content flow."""

    content: str = Field(..., min_length=1)
    options: ContentOptions = Field(default_factory=ContentOptions)


class OptimizationOutput(FlowResult):
    """Outcome of an optimize-content run."""

    original_content: str = ""
    optimized_content: str = ""
    seo: SEOOptimization | None = None
    original_score: int | None = None
    improved_score: int | None = None
    quality_improvement: int = 0
    changes: list[str] = Field(default_factory=list)


class AnalysisOutput(FlowResult):
    """Outcome of an analyze run; analyses that failed keep their defaults."""

    seo: SEOAnalysis = Field(default_factory=SEOAnalysis)
    quality: QualityReview = Field(default_factory=QualityReview)
    sentiment: SentimentResult = Field(default_factory=SentimentResult)
    entities: list[Entity] = Field(default_factory=list)
    keywords: list[Keyword] = Field(default_factory=list)
    tags: TagResult = Field(default_factory=TagResult)
    readability: Readability = Field(default_factory=Readability)
