"""Parallel stages: fan the same input out to every step, then join."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .context import RunContext
from .contracts import KeyedContract
from .dispatch import EngineOptions, FailurePolicy, run_concurrently
from .steps import Step


@dataclass(frozen=True, slots=True)
class Parallel:
    members: tuple[Step | str, ...]
    policy: FailurePolicy | None = None

    @property
    def step_ids(self) -> list[str]:
        return [m if isinstance(m, str) else m.id for m in self.members]

    @property
    def steps(self) -> list[Step]:
        return [m for m in self.members if isinstance(m, Step)]

    def output_contract(self) -> KeyedContract:
        # Every participant contributes exactly one entry once the join completes.
        return KeyedContract(
            f"parallel({', '.join(self.step_ids)})",
            {s.id: s.output_contract for s in self.steps},
            required=True,
        )


async def join(
    parallel: Parallel,
    upstream: Any,
    context: RunContext,
    *,
    options: EngineOptions,
) -> dict[str, Any]:
    steps = parallel.steps
    if len(steps) != len(parallel.members):
        raise TypeError("Parallel stage has unresolved step references; commit the workflow")
    return await run_concurrently(
        steps,
        upstream,
        context,
        policy=parallel.policy or options.failure_policy,
        options=options,
    )
