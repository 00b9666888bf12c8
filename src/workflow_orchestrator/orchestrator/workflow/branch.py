"""Branch stages: route upstream output to every case whose predicate holds.

Routing is by inclusion, not first match. Cases whose predicates overlap all
run; a workflow that needs exclusive routing writes exclusive predicates.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .context import RunContext
from .contracts import KeyedContract
from .dispatch import EngineOptions, FailurePolicy, run_concurrently
from .errors import StepExecutionError, WorkflowError
from .steps import Step

Predicate = Callable[[Any], bool | Awaitable[bool]]


@dataclass(frozen=True, slots=True)
class BranchCase:
    predicate: Predicate
    step: Step | str

    @property
    def step_id(self) -> str:
        return self.step if isinstance(self.step, str) else self.step.id


@dataclass(frozen=True, slots=True)
class Branch:
    cases: tuple[BranchCase, ...]
    policy: FailurePolicy | None = None

    @property
    def step_ids(self) -> list[str]:
        return [case.step_id for case in self.cases]

    @property
    def steps(self) -> list[Step]:
        return [case.step for case in self.cases if isinstance(case.step, Step)]

    def output_contract(self) -> KeyedContract:
        return KeyedContract(
            f"branch({', '.join(self.step_ids)})",
            {s.id: s.output_contract for s in self.steps},
            required=False,
        )


async def route(
    branch: Branch,
    upstream: Any,
    context: RunContext,
    *,
    options: EngineOptions,
) -> dict[str, Any]:
    """Evaluate every predicate against ``upstream`` and run all matches.

    Returns a mapping of matched step id to validated output; empty when no
    predicate matched (no step runs in that case).
    """

    matched: list[Step] = []
    for case in branch.cases:
        if not isinstance(case.step, Step):
            raise TypeError(f"Branch case '{case.step_id}' was not resolved; commit the workflow")
        if await _evaluate(case, upstream, context):
            matched.append(case.step)

    context.emit("branch_evaluated", matched=[s.id for s in matched])
    return await run_concurrently(
        matched,
        upstream,
        context,
        policy=branch.policy or options.failure_policy,
        options=options,
    )


async def _evaluate(case: BranchCase, upstream: Any, context: RunContext) -> bool:
    try:
        result = case.predicate(upstream)
        if inspect.isawaitable(result):
            result = await result
    except WorkflowError:
        raise
    except Exception as exc:
        raise StepExecutionError(
            f"Branch condition for '{case.step_id}' failed: {exc}",
            step_id=case.step_id,
            run_id=context.run_id,
        ) from exc
    return bool(result)
