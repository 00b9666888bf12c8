"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApiWorkflow(BaseModel):
    id: str
    description: str
    state: str
    input: str
    output: str
    stages: list[dict[str, Any]] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class RunRequest(BaseModel):
    input: dict[str, Any]
    run_id: str | None = Field(default=None, alias="runId")

    model_config = ConfigDict(populate_by_name=True)


class RunResponse(BaseModel):
    run_id: str = Field(alias="runId")
    workflow_id: str = Field(alias="workflowId")
    output: Any

    model_config = ConfigDict(populate_by_name=True)
