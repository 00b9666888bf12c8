"""Error taxonomy for workflow runs.

Every error raised by the engine derives from :class:`WorkflowError` and carries
enough context (workflow, run, stage, step) to diagnose a failure without
knowing how the plan is executed internally.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Literal

from .contracts import FieldIssue

Boundary = Literal["input", "output"]


class WorkflowError(Exception):
    kind = "workflow"

    def __init__(
        self,
        message: str,
        *,
        workflow_id: str | None = None,
        run_id: str | None = None,
        step_id: str | None = None,
        stage_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.workflow_id = workflow_id
        self.run_id = run_id
        self.step_id = step_id
        self.stage_index = stage_index

    def annotate(
        self,
        *,
        workflow_id: str | None = None,
        run_id: str | None = None,
        stage_index: int | None = None,
    ) -> WorkflowError:
        """Fill in run coordinates that were unknown where the error was raised."""

        if self.workflow_id is None:
            self.workflow_id = workflow_id
        if self.run_id is None:
            self.run_id = run_id
        if self.stage_index is None:
            self.stage_index = stage_index
        return self

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "message": self.message}
        for key in ("workflow_id", "run_id", "stage_index", "step_id"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out

    def __str__(self) -> str:
        where = []
        if self.workflow_id is not None:
            where.append(f"workflow={self.workflow_id}")
        if self.stage_index is not None:
            where.append(f"stage={self.stage_index}")
        if self.step_id is not None:
            where.append(f"step={self.step_id}")
        if not where:
            return self.message
        return f"{self.message} [{', '.join(where)}]"


class StructuralError(WorkflowError):
    """The graph is malformed or used outside its lifecycle."""

    kind = "structural"

    def __init__(self, message: str, *, problems: Iterable[str] = (), **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.problems = list(problems)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        if self.problems:
            out["problems"] = list(self.problems)
        return out


class UnknownWorkflowError(StructuralError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Unknown workflow '{workflow_id}'", workflow_id=workflow_id)


class ValidationError(WorkflowError):
    """A value failed the contract at a step or workflow boundary.

    ``boundary="input"`` points at the upstream data, ``boundary="output"`` at
    the step that produced the value.
    """

    kind = "validation"

    def __init__(
        self,
        message: str,
        *,
        boundary: Boundary,
        issues: Sequence[FieldIssue] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.boundary = boundary
        self.issues = tuple(issues)

    @property
    def fields(self) -> list[str]:
        return [issue.path for issue in self.issues]

    @classmethod
    def for_step(
        cls, step_id: str, boundary: Boundary, issues: Sequence[FieldIssue]
    ) -> ValidationError:
        return cls(
            f"Step '{step_id}' {boundary} failed validation: {_describe(issues)}",
            boundary=boundary,
            issues=issues,
            step_id=step_id,
        )

    @classmethod
    def for_workflow(
        cls, workflow_id: str, boundary: Boundary, issues: Sequence[FieldIssue]
    ) -> ValidationError:
        return cls(
            f"Workflow '{workflow_id}' {boundary} failed validation: {_describe(issues)}",
            boundary=boundary,
            issues=issues,
            workflow_id=workflow_id,
        )

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["boundary"] = self.boundary
        out["issues"] = [issue.to_json() for issue in self.issues]
        return out


class StepExecutionError(WorkflowError):
    """A step's execute function failed. The original exception is the cause."""

    kind = "step_execution"

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        cause = self.__cause__
        if cause is not None:
            out["cause"] = f"{type(cause).__name__}: {cause}"
        return out


class StepTimeoutError(StepExecutionError, TimeoutError):
    kind = "timeout"

    def __init__(self, step_id: str, timeout_seconds: float, **kwargs: Any) -> None:
        super().__init__(
            f"Step '{step_id}' timed out after {timeout_seconds}s", step_id=step_id, **kwargs
        )
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["timeout_seconds"] = self.timeout_seconds
        return out


class AggregateError(WorkflowError):
    """Every failure of a concurrent stage run under the collect-all policy."""

    kind = "aggregate"

    def __init__(self, errors: Sequence[WorkflowError], **kwargs: Any) -> None:
        self.errors = tuple(errors)
        ids = ", ".join(str(e.step_id) for e in self.errors)
        super().__init__(f"{len(self.errors)} step(s) failed: {ids}", **kwargs)

    @property
    def step_ids(self) -> list[str | None]:
        return [e.step_id for e in self.errors]

    def annotate(
        self,
        *,
        workflow_id: str | None = None,
        run_id: str | None = None,
        stage_index: int | None = None,
    ) -> WorkflowError:
        for error in self.errors:
            error.annotate(workflow_id=workflow_id, run_id=run_id, stage_index=stage_index)
        return super().annotate(workflow_id=workflow_id, run_id=run_id, stage_index=stage_index)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["errors"] = [e.to_dict() for e in self.errors]
        return out


def _describe(issues: Sequence[FieldIssue]) -> str:
    if not issues:
        return "invalid value"
    return "; ".join(f"{i.path or '<root>'}: {i.message}" for i in issues)
