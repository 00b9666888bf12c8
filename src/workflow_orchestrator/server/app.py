"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the workflow registry.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from workflow_orchestrator import __version__
from workflow_orchestrator.content import build_registry
from workflow_orchestrator.orchestrator.config import OrchestratorSettings
from workflow_orchestrator.orchestrator.workflow import (
    StepTimeoutError,
    StructuralError,
    UnknownWorkflowError,
    ValidationError,
    Workflow,
    WorkflowError,
    WorkflowRegistry,
)
from workflow_orchestrator.orchestrator.workflow.contracts import to_plain
from workflow_orchestrator.server.config import ServerSettings
from workflow_orchestrator.server.models import ApiWorkflow, RunRequest, RunResponse

logger = logging.getLogger(__name__)


def _to_api_workflow(workflow: Workflow) -> ApiWorkflow:
    return ApiWorkflow.model_validate(workflow.describe())


def _status_for(error: WorkflowError) -> int:
    # Order matters: UnknownWorkflowError is a StructuralError, StepTimeoutError
    # is a StepExecutionError.
    if isinstance(error, UnknownWorkflowError):
        return 404
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, StructuralError):
        return 409
    if isinstance(error, StepTimeoutError):
        return 504
    # StepExecutionError, AggregateError
    return 500


def create_app(
    registry: WorkflowRegistry | None = None,
    *,
    settings: OrchestratorSettings | None = None,
) -> FastAPI:
    server_settings = ServerSettings()
    if registry is None:
        settings = settings or OrchestratorSettings()
        registry = build_registry(settings.engine_options())

    app = FastAPI(
        title="Workflow Orchestrator",
        version=__version__,
        description="REST API over the workflow registry.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose the registry for request handlers that want to read it.
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/v1/workflows", response_model=list[ApiWorkflow])
    def list_workflows() -> list[ApiWorkflow]:
        return [_to_api_workflow(w) for w in registry.list()]

    @app.get("/api/v1/workflows/{workflow_id}", response_model=ApiWorkflow)
    def get_workflow(workflow_id: str) -> ApiWorkflow:
        try:
            return _to_api_workflow(registry.get(workflow_id))
        except UnknownWorkflowError as e:
            raise HTTPException(status_code=404, detail=e.to_dict()) from e

    @app.post("/api/v1/workflows/{workflow_id}/runs", response_model=RunResponse)
    async def run_workflow(workflow_id: str, req: RunRequest) -> RunResponse:
        run_id = req.run_id or uuid.uuid4().hex
        try:
            output = await registry.run_workflow(workflow_id, req.input, run_id=run_id)
        except WorkflowError as e:
            status = _status_for(e)
            if status >= 500:
                logger.exception(
                    "Workflow run failed",
                    extra={"workflow_id": workflow_id, "run_id": run_id},
                )
            raise HTTPException(status_code=status, detail=e.to_dict()) from e
        return RunResponse(run_id=run_id, workflow_id=workflow_id, output=to_plain(output))

    return app
