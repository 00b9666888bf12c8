"""Parallel analysis workflow.

Runs SEO, readability and sentiment analysis side by side on the same content
and combines the three reports into one.
"""

from __future__ import annotations

import math
import random

from workflow_orchestrator.orchestrator.workflow import (
    EngineOptions,
    Step,
    StepContext,
    Workflow,
    create_step,
)

from .schemas import (
    AnalysisBundle,
    AnalysisReport,
    AnalysisResults,
    ContentInput,
    ReadabilityReport,
    SentimentReport,
    SeoReport,
)
from .text import raw_sentence_count, words

WORKFLOW_ID = "parallel-analysis-workflow"

POSITIVE_WORDS = ("good", "great", "excellent", "amazing")
NEGATIVE_WORDS = ("bad", "terrible", "awful", "horrible")

KEYWORD_MIN_LENGTH = 5
KEYWORD_LIMIT = 3


def seo_step(rng: random.Random) -> Step:
    def analyse(data: ContentInput, context: StepContext) -> SeoReport:
        context.emit("analysis", kind="seo")
        tokens = words(data.content.lower())
        keywords = [w for w in tokens if len(w) >= KEYWORD_MIN_LENGTH][:KEYWORD_LIMIT]
        return SeoReport(seo_score=rng.randrange(60, 100), keywords=keywords)

    return create_step(
        id="seo-analysis",
        input=ContentInput,
        output=SeoReport,
        execute=analyse,
        description="SEO optimization analysis",
    )


def readability_step() -> Step:
    def analyse(data: ContentInput, context: StepContext) -> ReadabilityReport:
        context.emit("analysis", kind="readability")
        per_sentence = len(words(data.content)) / raw_sentence_count(data.content)
        score = max(0.0, 100 - per_sentence * 3)
        if score > 80:
            grade = "Easy"
        elif score > 60:
            grade = "Medium"
        else:
            grade = "Hard"
        return ReadabilityReport(readability_score=math.floor(score), grade_level=grade)

    return create_step(
        id="readability-analysis",
        input=ContentInput,
        output=ReadabilityReport,
        execute=analyse,
        description="Content readability analysis",
    )


def sentiment_step(rng: random.Random) -> Step:
    def analyse(data: ContentInput, context: StepContext) -> SentimentReport:
        context.emit("analysis", kind="sentiment")
        content = data.content.lower()
        positive = sum(1 for w in POSITIVE_WORDS if w in content)
        negative = sum(1 for w in NEGATIVE_WORDS if w in content)

        sentiment = "neutral"
        if positive > negative:
            sentiment = "positive"
        if negative > positive:
            sentiment = "negative"

        return SentimentReport(sentiment=sentiment, confidence=0.7 + rng.random() * 0.3)

    return create_step(
        id="sentiment-analysis",
        input=ContentInput,
        output=SentimentReport,
        execute=analyse,
        description="Content sentiment analysis",
    )


def combine_results(data: AnalysisBundle, context: StepContext) -> AnalysisReport:
    context.emit("combining", reports=3)
    return AnalysisReport(
        results=AnalysisResults(
            seo=data.seo, readability=data.readability, sentiment=data.sentiment
        )
    )


combine_step = create_step(
    id="combine-results",
    input=AnalysisBundle,
    output=AnalysisReport,
    execute=combine_results,
    description="Combines parallel analysis results",
)


def build_parallel_analysis_workflow(
    options: EngineOptions | None = None, *, rng: random.Random | None = None
) -> Workflow:
    rng = rng or random.Random()
    # Each scoring step owns a generator; sync steps run on worker threads.
    seo_rng, sentiment_rng = (random.Random(rng.getrandbits(32)) for _ in range(2))
    return (
        Workflow(
            WORKFLOW_ID,
            input=ContentInput,
            output=AnalysisReport,
            description="Run multiple content analyses in parallel",
            options=options,
        )
        .parallel([seo_step(seo_rng), readability_step(), sentiment_step(sentiment_rng)])
        .then(combine_step)
        .commit()
    )
