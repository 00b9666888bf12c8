"""Concurrent dispatch shared by branch and parallel stages."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .context import RunContext
from .errors import AggregateError, WorkflowError
from .steps import Step, run_step

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    FAIL_FAST = "fail_fast"
    COLLECT_ALL = "collect_all"


@dataclass(frozen=True, slots=True)
class EngineOptions:
    """Run-time knobs shared by every stage of a workflow."""

    failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST
    cancel_grace_seconds: float = 5.0
    step_timeout_seconds: float | None = None
    strict_commit: bool = False


async def run_concurrently(
    steps: Sequence[Step],
    upstream: Any,
    context: RunContext,
    *,
    policy: FailurePolicy,
    options: EngineOptions,
) -> dict[str, Any]:
    """Run ``steps`` side by side on the same input and join their outputs.

    The result is keyed by step id in declared order. Under ``FAIL_FAST`` the
    first failure cancels the siblings still running; under ``COLLECT_ALL``
    every step runs to completion and failures are raised together.
    """

    if not steps:
        return {}

    tasks: dict[str, asyncio.Task[Any]] = {
        s.id: asyncio.create_task(
            run_step(s, upstream, context, default_timeout=options.step_timeout_seconds),
            name=f"{context.run_id}:{s.id}",
        )
        for s in steps
    }

    if policy is FailurePolicy.COLLECT_ALL:
        return await _collect_all(tasks, options)
    return await _fail_fast(tasks, context, options)


async def _fail_fast(
    tasks: dict[str, asyncio.Task[Any]], context: RunContext, options: EngineOptions
) -> dict[str, Any]:
    names = {task: step_id for step_id, task in tasks.items()}
    pending: set[asyncio.Task[Any]] = set(tasks.values())
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            # Every outcome in the batch is retrieved, not only the one raised.
            failures: list[tuple[str, BaseException]] = []
            for step_id, task in tasks.items():
                if task not in done or task.cancelled():
                    continue
                error = task.exception()
                if error is not None:
                    failures.append((step_id, error))
            if not failures:
                continue
            failed_id, error = failures[0]
            if pending:
                context.emit(
                    "stage_cancelling",
                    step_id=failed_id,
                    cancelled=[step_id for step_id, t in tasks.items() if t in pending],
                )
            await _cancel(pending, names, options.cancel_grace_seconds)
            raise error
    except asyncio.CancelledError:
        await _cancel(pending, names, options.cancel_grace_seconds)
        raise

    return {step_id: task.result() for step_id, task in tasks.items()}


async def _collect_all(
    tasks: dict[str, asyncio.Task[Any]], options: EngineOptions
) -> dict[str, Any]:
    try:
        outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)
    except asyncio.CancelledError:
        names = {task: step_id for step_id, task in tasks.items()}
        await _cancel(set(tasks.values()), names, options.cancel_grace_seconds)
        raise

    results: dict[str, Any] = {}
    failures: list[WorkflowError] = []
    for step_id, outcome in zip(tasks, outcomes, strict=True):
        if isinstance(outcome, WorkflowError):
            failures.append(outcome)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results[step_id] = outcome

    if failures:
        raise AggregateError(failures)
    return results


async def _cancel(
    tasks: set[asyncio.Task[Any]], names: dict[asyncio.Task[Any], str], grace_seconds: float
) -> None:
    """Cancel ``tasks`` and wait, up to the grace period, for them to stop."""

    if not tasks:
        return
    for task in tasks:
        task.cancel()
    done, stuck = await asyncio.wait(tasks, timeout=grace_seconds)
    for task in done:
        # Retrieve outcomes so asyncio does not report them as never retrieved.
        if not task.cancelled():
            task.exception()
    if stuck:
        logger.warning(
            "Cancelled steps did not stop within %.1fs",
            grace_seconds,
            extra={"steps": sorted(names[t] for t in stuck)},
        )
