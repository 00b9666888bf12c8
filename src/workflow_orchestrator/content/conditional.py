"""Conditional content workflow.

Assesses content, then routes it to quick, standard and/or deep processing.
Routing is inclusive: long or complex content always gets deep processing, and
short complex content gets both quick and deep processing.
"""

from __future__ import annotations

from workflow_orchestrator.orchestrator.workflow import EngineOptions, StepContext, Workflow, step

from .schemas import (
    Assessment,
    Category,
    Complexity,
    ContentInput,
    DeepMetadata,
    DeepProcessed,
    ProcessedContent,
    ProcessingResult,
    StandardMetadata,
    StandardProcessed,
)
from .text import reading_time, sentences, word_count

WORKFLOW_ID = "conditional-content-workflow"

MEDIUM_ABOVE_WORDS = 50
LONG_ABOVE_WORDS = 200
COMPLEX_ABOVE_WORDS_PER_SENTENCE = 15
KEY_POINTS = 3


@step("content-assessment", input=ContentInput, output=Assessment)
def assess_content(data: ContentInput, context: StepContext) -> Assessment:
    """Assesses content characteristics for routing."""

    count = word_count(data.content)

    category: Category = "short"
    if count > MEDIUM_ABOVE_WORDS:
        category = "medium"
    if count > LONG_ABOVE_WORDS:
        category = "long"

    per_sentence = count / max(len(sentences(data.content)), 1)
    complexity: Complexity = (
        "complex" if per_sentence > COMPLEX_ABOVE_WORDS_PER_SENTENCE else "simple"
    )

    context.emit("assessment", category=category, complexity=complexity, word_count=count)
    return Assessment(
        content=data.content,
        type=data.type,
        word_count=count,
        category=category,
        complexity=complexity,
    )


@step("quick-processing", input=Assessment, output=ProcessedContent)
def quick_processing(data: Assessment, context: StepContext) -> ProcessedContent:
    """Fast processing for short content."""

    context.emit("processing", mode="quick")
    return ProcessedContent(
        content=data.content,
        type=data.type,
        word_count=data.word_count,
        processing_type="quick",
        summary=f"Quick summary of {data.word_count} word {data.type}",
    )


@step("standard-processing", input=Assessment, output=StandardProcessed)
def standard_processing(data: Assessment, context: StepContext) -> StandardProcessed:
    """Standard processing for medium content."""

    context.emit("processing", mode="standard")
    return StandardProcessed(
        content=data.content,
        type=data.type,
        word_count=data.word_count,
        processing_type="standard",
        summary=f"Standard summary of {data.word_count} word {data.type}",
        metadata=StandardMetadata(reading_time=reading_time(data.word_count)),
    )


@step("deep-processing", input=Assessment, output=DeepProcessed)
def deep_processing(data: Assessment, context: StepContext) -> DeepProcessed:
    """Thorough processing for long or complex content."""

    context.emit("processing", mode="deep")
    key_points = [s.strip() for s in sentences(data.content)[:KEY_POINTS]]
    return DeepProcessed(
        content=data.content,
        type=data.type,
        word_count=data.word_count,
        processing_type="deep",
        summary=f"Deep analysis of {data.word_count} word {data.type}",
        metadata=DeepMetadata(
            reading_time=reading_time(data.word_count),
            key_points=key_points,
        ),
    )


def is_short(a: Assessment) -> bool:
    return a.category == "short"


def needs_deep_processing(a: Assessment) -> bool:
    return a.category == "long" or a.complexity == "complex"


def is_plain_medium(a: Assessment) -> bool:
    return a.category == "medium" and a.complexity == "simple"


def build_conditional_workflow(options: EngineOptions | None = None) -> Workflow:
    return (
        Workflow(
            WORKFLOW_ID,
            input=ContentInput,
            output=ProcessingResult,
            description="Routes content to different processing based on characteristics",
            options=options,
        )
        .then(assess_content)
        .branch(
            [
                (is_short, quick_processing),
                (needs_deep_processing, deep_processing),
                (is_plain_medium, standard_processing),
            ]
        )
        .commit()
    )
