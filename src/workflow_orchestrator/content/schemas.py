"""Pydantic models for the content workflows."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["article", "blog", "social"]
Category = Literal["short", "medium", "long"]
Complexity = Literal["simple", "complex"]
Sentiment = Literal["positive", "neutral", "negative"]


class ContentInput(BaseModel):
    content: str
    type: ContentType = "article"


class Assessment(BaseModel):
    content: str
    type: str
    word_count: int = Field(alias="wordCount")
    category: Category
    complexity: Complexity

    model_config = ConfigDict(populate_by_name=True)


class ProcessedContent(BaseModel):
    content: str
    type: str
    word_count: int = Field(alias="wordCount")
    processing_type: str = Field(alias="processingType")
    summary: str

    model_config = ConfigDict(populate_by_name=True)


class StandardMetadata(BaseModel):
    reading_time: int = Field(alias="readingTime")

    model_config = ConfigDict(populate_by_name=True)


class DeepMetadata(BaseModel):
    reading_time: int = Field(alias="readingTime")
    key_points: list[str] = Field(alias="keyPoints")

    model_config = ConfigDict(populate_by_name=True)


class StandardProcessed(ProcessedContent):
    metadata: StandardMetadata


class DeepProcessed(ProcessedContent):
    metadata: DeepMetadata


class ProcessingResult(BaseModel):
    """Output of the conditional workflow: one entry per branch that ran."""

    quick: ProcessedContent | None = Field(default=None, alias="quick-processing")
    standard: StandardProcessed | None = Field(default=None, alias="standard-processing")
    deep: DeepProcessed | None = Field(default=None, alias="deep-processing")

    model_config = ConfigDict(populate_by_name=True)

    def processed(self) -> list[ProcessedContent]:
        return [p for p in (self.quick, self.standard, self.deep) if p is not None]


class SeoReport(BaseModel):
    seo_score: int = Field(alias="seoScore")
    keywords: list[str]

    model_config = ConfigDict(populate_by_name=True)


class ReadabilityReport(BaseModel):
    readability_score: int = Field(alias="readabilityScore")
    grade_level: str = Field(alias="gradeLevel")

    model_config = ConfigDict(populate_by_name=True)


class SentimentReport(BaseModel):
    sentiment: Sentiment
    confidence: float = Field(ge=0.0, le=1.0)


class AnalysisBundle(BaseModel):
    """Joined output of the three analysis steps, keyed by step id."""

    seo: SeoReport = Field(alias="seo-analysis")
    readability: ReadabilityReport = Field(alias="readability-analysis")
    sentiment: SentimentReport = Field(alias="sentiment-analysis")

    model_config = ConfigDict(populate_by_name=True)


class AnalysisResults(BaseModel):
    seo: SeoReport
    readability: ReadabilityReport
    sentiment: SentimentReport


class AnalysisReport(BaseModel):
    results: AnalysisResults
