"""Content workflows built on the orchestration engine.

- `conditional-content-workflow`: assess, then route to quick/standard/deep processing
- `parallel-analysis-workflow`: SEO, readability and sentiment side by side, then combine
"""

from __future__ import annotations

import random

from workflow_orchestrator.orchestrator.workflow import EngineOptions, WorkflowRegistry

from .analysis import build_parallel_analysis_workflow
from .conditional import build_conditional_workflow


def build_registry(
    options: EngineOptions | None = None, *, rng: random.Random | None = None
) -> WorkflowRegistry:
    """Registry holding every content workflow, sharing one set of engine options."""

    return WorkflowRegistry(
        [
            build_conditional_workflow(options),
            build_parallel_analysis_workflow(options, rng=rng),
        ]
    )


__all__ = [
    "build_conditional_workflow",
    "build_parallel_analysis_workflow",
    "build_registry",
]
