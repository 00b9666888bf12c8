from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .errors import StructuralError, UnknownWorkflowError
from .events import EventSink
from .graph import Workflow

logger = logging.getLogger(__name__)


class WorkflowRegistry:
    """Workflows addressable by id; the entry point for hosting processes."""

    def __init__(self, workflows: Iterable[Workflow] = ()) -> None:
        self._workflows: dict[str, Workflow] = {}
        for workflow in workflows:
            self.register(workflow)

    def register(self, workflow: Workflow) -> Workflow:
        if workflow.id in self._workflows:
            raise StructuralError(
                f"Workflow '{workflow.id}' is already registered", workflow_id=workflow.id
            )
        self._workflows[workflow.id] = workflow
        return workflow

    def get(self, workflow_id: str) -> Workflow:
        try:
            return self._workflows[workflow_id]
        except KeyError:
            raise UnknownWorkflowError(workflow_id) from None

    def list(self) -> list[Workflow]:
        return list(self._workflows.values())

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._workflows

    async def run_workflow(
        self,
        workflow_id: str,
        initial_input: Any,
        *,
        run_id: str | None = None,
        events: EventSink | None = None,
    ) -> Any:
        """Run a registered workflow by id and return its validated output."""

        workflow = self.get(workflow_id)
        logger.info("Running workflow", extra={"workflow_id": workflow_id, "run_id": run_id})
        return await workflow.run(initial_input, run_id=run_id, events=events)
