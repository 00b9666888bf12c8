from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RunEvent:
    """A signal emitted while a workflow runs.

    The engine emits lifecycle events (run, stage, step); steps emit their own
    events through the context they are given. Events never drive control flow.
    """

    kind: str
    run_id: str
    workflow_id: str
    step_id: str | None = None
    stage_index: int | None = None
    data: dict[str, object] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "kind": self.kind,
            "run_id": self.run_id,
            "workflow_id": self.workflow_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.step_id is not None:
            out["step_id"] = self.step_id
        if self.stage_index is not None:
            out["stage_index"] = self.stage_index
        if self.data:
            out["data"] = dict(self.data)
        return out


class EventSink(Protocol):
    def emit(self, event: RunEvent) -> None: ...


class LoggingEventSink:
    """Forward run events to a logger as structured records."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = logger or logging.getLogger("workflow_orchestrator.runs")
        self._level = level

    def emit(self, event: RunEvent) -> None:
        level = logging.WARNING if event.kind.endswith("_failed") else self._level
        self._logger.log(
            level,
            "%s",
            event.kind,
            extra={
                "run_id": event.run_id,
                "workflow_id": event.workflow_id,
                "step_id": event.step_id,
                "stage_index": event.stage_index,
                "data": dict(event.data),
            },
        )


class RecordingEventSink:
    """Keep every event in memory. Handy for tests and the CLI's ``--events``."""

    def __init__(self) -> None:
        self.events: list[RunEvent] = []

    def emit(self, event: RunEvent) -> None:
        self.events.append(event)

    def kinds(self, *, step_id: str | None = None) -> list[str]:
        return [e.kind for e in self.events if step_id is None or e.step_id == step_id]

    def of_kind(self, kind: str) -> list[RunEvent]:
        return [e for e in self.events if e.kind == kind]


class FanOutEventSink:
    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = sinks

    def emit(self, event: RunEvent) -> None:
        for sink in self._sinks:
            sink.emit(event)
