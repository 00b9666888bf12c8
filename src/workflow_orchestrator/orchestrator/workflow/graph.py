from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import replace
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .branch import Branch, BranchCase, Predicate, route
from .context import RunContext
from .contracts import CompatibilityIssue, Contract, ContractViolation, as_contract, check_compatible
from .dispatch import EngineOptions, FailurePolicy
from .errors import Boundary, StructuralError, ValidationError, WorkflowError
from .events import EventSink, LoggingEventSink
from .parallel import Parallel, join
from .steps import Step, run_step

logger = logging.getLogger(__name__)

Stage = Step | Branch | Parallel


class WorkflowState(str, Enum):
    BUILDING = "building"
    COMMITTED = "committed"


ALLOWED_TRANSITIONS: dict[WorkflowState, set[WorkflowState]] = {
    WorkflowState.BUILDING: {WorkflowState.COMMITTED},
    WorkflowState.COMMITTED: set(),
}


class Workflow:
    """Builder for an ordered plan of stages, and the runner for that plan.

    Stages are appended with :meth:`then`, :meth:`branch` and :meth:`parallel`.
    :meth:`commit` checks the plan and freezes it; only a committed workflow
    can :meth:`run`.

    Example::

        workflow = (
            Workflow("content", input=ContentInput, output=Report)
            .then(assess)
            .parallel([seo, readability])
            .then(combine)
            .commit()
        )
        report = await workflow.run({"content": "..."})
    """

    def __init__(
        self,
        id: str,  # noqa: A002
        *,
        input: Contract | type[BaseModel],  # noqa: A002
        output: Contract | type[BaseModel],
        description: str = "",
        steps: Iterable[Step] = (),
        options: EngineOptions | None = None,
    ) -> None:
        self.id = id
        self.description = description
        self.input_contract = as_contract(input)
        self.output_contract = as_contract(output)
        self.options = options or EngineOptions()
        self.state = WorkflowState.BUILDING
        self.warnings: list[str] = []

        self._registry: dict[str, Step] = {}
        self._conflicts: list[str] = []
        self._stages: list[Stage] = []
        for s in steps:
            self._register(s)

    @property
    def committed(self) -> bool:
        return self.state is WorkflowState.COMMITTED

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    @property
    def steps(self) -> dict[str, Step]:
        return dict(self._registry)

    # -- building -----------------------------------------------------------

    def register(self, *steps: Step) -> Workflow:
        """Make steps available to be referenced by id in later stages."""

        self._ensure_building("register steps on")
        for s in steps:
            self._register(s)
        return self

    def then(self, step: Step | str) -> Workflow:
        self._ensure_building("append a stage to")
        self._register_ref(step)
        self._stages.append(step)  # type: ignore[arg-type]
        return self

    def branch(
        self,
        cases: Iterable[tuple[Predicate, Step | str]],
        *,
        policy: FailurePolicy | None = None,
    ) -> Workflow:
        self._ensure_building("append a stage to")
        built = tuple(BranchCase(predicate=p, step=s) for p, s in cases)
        for case in built:
            self._register_ref(case.step)
        self._stages.append(Branch(cases=built, policy=policy))
        return self

    def parallel(
        self, steps: Sequence[Step | str], *, policy: FailurePolicy | None = None
    ) -> Workflow:
        self._ensure_building("append a stage to")
        for s in steps:
            self._register_ref(s)
        self._stages.append(Parallel(members=tuple(steps), policy=policy))
        return self

    def commit(self) -> Workflow:
        """Resolve references, check the plan and freeze it.

        Raises:
            StructuralError: Listing every defect found.
        """

        self._transition(WorkflowState.COMMITTED)
        self.warnings = []

        problems = list(self._conflicts)
        if not self._stages:
            problems.append("workflow has no stages")

        resolved: list[Stage] = []
        seen: dict[str, int] = {}
        for index, stage in enumerate(self._stages):
            stage_problems, stage = self._resolve(index, stage)
            problems.extend(stage_problems)
            for step_id in _stage_step_ids(stage):
                if step_id in seen:
                    problems.append(
                        f"stage {index}: step '{step_id}' already used in stage {seen[step_id]}"
                    )
                seen.setdefault(step_id, index)
            resolved.append(stage)

        if not problems:
            problems.extend(self._check_shapes(resolved))

        if problems:
            raise StructuralError(
                f"Workflow '{self.id}' is malformed: {'; '.join(problems)}",
                problems=problems,
                workflow_id=self.id,
            )

        self._stages = resolved
        self.state = WorkflowState.COMMITTED
        logger.info(
            "Workflow committed",
            extra={"workflow_id": self.id, "stages": len(resolved), "warnings": self.warnings},
        )
        return self

    # -- running ------------------------------------------------------------

    async def run(
        self,
        initial_input: Any,
        *,
        run_id: str | None = None,
        events: EventSink | None = None,
    ) -> Any:
        """Run the committed plan and return the validated final output.

        Raises:
            StructuralError: The workflow was not committed.
            ValidationError: A value broke a contract at any boundary.
            StepExecutionError: A step failed (``StepTimeoutError`` on timeout).
            AggregateError: Concurrent failures under the collect-all policy.
        """

        if not self.committed:
            raise StructuralError(
                f"Workflow '{self.id}' must be committed before it can run",
                workflow_id=self.id,
            )

        context = RunContext(
            run_id=run_id or uuid.uuid4().hex,
            workflow_id=self.id,
            events=events or LoggingEventSink(),
        )

        try:
            value = self._validate(self.input_contract, initial_input, "input")
            context.emit("run_started")
            for index, stage in enumerate(self._stages):
                context.begin_stage(index, value)
                context.emit("stage_started", kind=_stage_kind(stage))
                value = await self._run_stage(stage, value, context)
                context.emit("stage_completed", kind=_stage_kind(stage))
            context.end_stages()
            output = self._validate(self.output_contract, value, "output")
        except WorkflowError as exc:
            exc.annotate(workflow_id=self.id, run_id=context.run_id, stage_index=context.stage_index)
            context.emit("run_failed", error=exc.to_dict())
            raise

        context.emit("run_completed")
        return output

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "state": self.state.value,
            "input": self.input_contract.name,
            "output": self.output_contract.name,
            "stages": [_describe_stage(stage) for stage in self._stages],
            "warnings": list(self.warnings),
        }

    # -- internals ----------------------------------------------------------

    async def _run_stage(self, stage: Stage, value: Any, context: RunContext) -> Any:
        if isinstance(stage, Step):
            return await run_step(
                stage, value, context, default_timeout=self.options.step_timeout_seconds
            )
        if isinstance(stage, Branch):
            return await route(stage, value, context, options=self.options)
        return await join(stage, value, context, options=self.options)

    def _validate(self, contract: Contract, value: Any, boundary: Boundary) -> Any:
        try:
            return contract.validate(value)
        except ContractViolation as exc:
            raise ValidationError.for_workflow(self.id, boundary, exc.issues) from exc

    def _ensure_building(self, action: str) -> None:
        if self.state is not WorkflowState.BUILDING:
            raise StructuralError(
                f"Cannot {action} workflow '{self.id}' after commit", workflow_id=self.id
            )

    def _transition(self, to: WorkflowState) -> None:
        if to not in ALLOWED_TRANSITIONS[self.state]:
            raise StructuralError(
                f"Illegal transition for workflow '{self.id}': {self.state.value} -> {to.value}",
                workflow_id=self.id,
            )

    def _register(self, s: Step) -> None:
        existing = self._registry.get(s.id)
        if existing is None:
            self._registry[s.id] = s
        elif existing is not s:
            self._conflicts.append(f"duplicate step id '{s.id}'")

    def _register_ref(self, ref: Step | str) -> None:
        if isinstance(ref, Step):
            self._register(ref)

    def _lookup(self, ref: Step | str) -> Step | None:
        if isinstance(ref, Step):
            return ref
        return self._registry.get(ref)

    def _resolve(self, index: int, stage: Stage | str) -> tuple[list[str], Stage]:
        problems: list[str] = []

        def lookup(ref: Step | str) -> Step | str:
            found = self._lookup(ref)
            if found is None:
                problems.append(f"stage {index}: unknown step '{ref}'")
                return ref
            return found

        if isinstance(stage, Branch):
            if not stage.cases:
                problems.append(f"stage {index}: branch has no cases")
            cases = tuple(replace(c, step=lookup(c.step)) for c in stage.cases)
            return problems, replace(stage, cases=cases)
        if isinstance(stage, Parallel):
            if not stage.members:
                problems.append(f"stage {index}: parallel stage has no steps")
            return problems, replace(stage, members=tuple(lookup(m) for m in stage.members))
        resolved = lookup(stage)
        return problems, resolved  # type: ignore[return-value]

    def _check_shapes(self, stages: Sequence[Stage]) -> list[str]:
        problems: list[str] = []
        upstream: Contract = self.input_contract
        upstream_label = "workflow input"
        for index, stage in enumerate(stages):
            for step in _stage_entry_steps(stage):
                problems.extend(
                    self._compat(
                        upstream, step.input_contract, f"{upstream_label} -> step '{step.id}'"
                    )
                )
            upstream = _stage_output(stage)
            upstream_label = f"stage {index}"
        problems.extend(
            self._compat(upstream, self.output_contract, f"{upstream_label} -> workflow output")
        )
        return problems

    def _compat(self, upstream: Contract, downstream: Contract, label: str) -> list[str]:
        problems: list[str] = []
        for issue in check_compatible(upstream, downstream):
            message = f"{label}: {issue}"
            if _is_error(issue, strict=self.options.strict_commit):
                problems.append(message)
            else:
                self.warnings.append(message)
                logger.warning(
                    "Workflow shape warning", extra={"workflow_id": self.id, "detail": message}
                )
        return problems


def _is_error(issue: CompatibilityIssue, *, strict: bool) -> bool:
    return issue.severity == "error" or strict


def _stage_entry_steps(stage: Stage) -> list[Step]:
    if isinstance(stage, Step):
        return [stage]
    return stage.steps


def _stage_output(stage: Stage) -> Contract:
    if isinstance(stage, Step):
        return stage.output_contract
    return stage.output_contract()


def _stage_step_ids(stage: Stage) -> list[str]:
    if isinstance(stage, Step):
        return [stage.id]
    if isinstance(stage, str):
        return [stage]
    return stage.step_ids


def _stage_kind(stage: Stage) -> str:
    if isinstance(stage, Branch):
        return "branch"
    if isinstance(stage, Parallel):
        return "parallel"
    return "step"


def _describe_stage(stage: Stage) -> dict[str, Any]:
    if isinstance(stage, Branch):
        return {"kind": "branch", "steps": stage.step_ids, "policy": _policy(stage.policy)}
    if isinstance(stage, Parallel):
        return {"kind": "parallel", "steps": stage.step_ids, "policy": _policy(stage.policy)}
    step_id = stage if isinstance(stage, str) else stage.id
    return {"kind": "step", "steps": [step_id]}


def _policy(policy: FailurePolicy | None) -> str | None:
    return policy.value if policy is not None else None
