from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import StructuralError
from .events import EventSink, RunEvent


@dataclass
class RunContext:
    """State owned by exactly one run of a workflow.

    Concurrent runs of the same workflow each get their own context; nothing
    here is shared across runs.
    """

    run_id: str
    workflow_id: str
    events: EventSink
    stage_index: int | None = None
    stage_input: Any = None
    outputs: dict[str, Any] = field(default_factory=dict)
    _invoked: set[str] = field(default_factory=set, repr=False)

    def begin_stage(self, index: int, stage_input: Any) -> None:
        self.stage_index = index
        self.stage_input = stage_input

    def end_stages(self) -> None:
        self.stage_index = None
        self.stage_input = None

    def claim(self, step_id: str) -> None:
        """Record that ``step_id`` is about to be invoked in this run."""

        if step_id in self._invoked:
            raise StructuralError(
                f"Step '{step_id}' was already invoked in this run",
                step_id=step_id,
                run_id=self.run_id,
                workflow_id=self.workflow_id,
            )
        self._invoked.add(step_id)

    def record_output(self, step_id: str, output: Any) -> None:
        self.outputs[step_id] = output

    def emit(self, kind: str, /, *, step_id: str | None = None, **data: object) -> None:
        self.events.emit(
            RunEvent(
                kind=kind,
                run_id=self.run_id,
                workflow_id=self.workflow_id,
                step_id=step_id,
                stage_index=self.stage_index,
                data=data,
            )
        )

    def for_step(self, step_id: str) -> StepContext:
        return StepContext(run=self, step_id=step_id)


@dataclass(frozen=True, slots=True)
class StepContext:
    """The view of a run handed to a step's execute function."""

    run: RunContext
    step_id: str

    @property
    def run_id(self) -> str:
        return self.run.run_id

    @property
    def workflow_id(self) -> str:
        return self.run.workflow_id

    def emit(self, kind: str, /, **data: object) -> None:
        self.run.emit(kind, step_id=self.step_id, **data)

    def output_of(self, step_id: str) -> Any:
        """Validated output of a step that already completed in this run."""

        return self.run.outputs.get(step_id)
