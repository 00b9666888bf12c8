from __future__ import annotations

import asyncio
import random

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from workflow_orchestrator.content import build_registry
from workflow_orchestrator.orchestrator.workflow import (
    StepContext,
    Workflow,
    WorkflowRegistry,
    create_step,
)
from workflow_orchestrator.server.app import create_app


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(build_registry(rng=random.Random(5))))


def test_health(client: TestClient) -> None:
    health = client.get("/api/v1/health").json()
    assert health["status"] == "ok"
    assert "version" in health


def test_list_and_get_workflows(client: TestClient) -> None:
    listed = client.get("/api/v1/workflows").json()
    assert [w["id"] for w in listed] == [
        "conditional-content-workflow",
        "parallel-analysis-workflow",
    ]

    one = client.get("/api/v1/workflows/conditional-content-workflow").json()
    assert one["input"] == "ContentInput"
    assert one["output"] == "ProcessingResult"
    assert [s["kind"] for s in one["stages"]] == ["step", "branch"]
    assert one["stages"][1]["steps"] == [
        "quick-processing",
        "deep-processing",
        "standard-processing",
    ]


def test_get_unknown_workflow_is_404(client: TestClient) -> None:
    res = client.get("/api/v1/workflows/missing")
    assert res.status_code == 404
    assert res.json()["detail"]["kind"] == "structural"


def test_run_conditional_workflow(client: TestClient) -> None:
    res = client.post(
        "/api/v1/workflows/conditional-content-workflow/runs",
        json={"input": {"content": "A great day."}, "runId": "api-1"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["runId"] == "api-1"
    assert body["workflowId"] == "conditional-content-workflow"
    assert body["output"]["quick-processing"]["wordCount"] == 3
    assert body["output"]["deep-processing"] is None


def test_run_parallel_workflow(client: TestClient) -> None:
    res = client.post(
        "/api/v1/workflows/parallel-analysis-workflow/runs",
        json={"input": {"content": "An amazing, excellent read."}},
    )

    assert res.status_code == 200
    results = res.json()["output"]["results"]
    assert results["sentiment"]["sentiment"] == "positive"
    assert set(results["seo"]) == {"seoScore", "keywords"}
    assert len(res.json()["runId"]) == 32


def test_run_with_invalid_input_is_422(client: TestClient) -> None:
    res = client.post(
        "/api/v1/workflows/conditional-content-workflow/runs",
        json={"input": {"content": "x", "type": "poem"}},
    )

    assert res.status_code == 422
    detail = res.json()["detail"]
    assert detail["kind"] == "validation"
    assert detail["boundary"] == "input"
    assert [i["path"] for i in detail["issues"]] == ["type"]


def test_run_unknown_workflow_is_404(client: TestClient) -> None:
    res = client.post("/api/v1/workflows/missing/runs", json={"input": {}})
    assert res.status_code == 404


def test_step_failure_is_500_and_timeout_is_504() -> None:
    class Empty(BaseModel):
        pass

    def explode(_e: Empty, _c: StepContext) -> Empty:
        raise RuntimeError("boom")

    async def hang(_e: Empty, _c: StepContext) -> Empty:
        await asyncio.sleep(5)
        return Empty()

    registry = WorkflowRegistry(
        [
            Workflow("explode", input=Empty, output=Empty)
            .then(create_step(id="explode", input=Empty, output=Empty, execute=explode))
            .commit(),
            Workflow("hang", input=Empty, output=Empty)
            .then(
                create_step(
                    id="hang", input=Empty, output=Empty, execute=hang, timeout_seconds=0.05
                )
            )
            .commit(),
        ]
    )
    client = TestClient(create_app(registry))

    failed = client.post("/api/v1/workflows/explode/runs", json={"input": {}})
    assert failed.status_code == 500
    assert failed.json()["detail"]["cause"] == "RuntimeError: boom"

    timed_out = client.post("/api/v1/workflows/hang/runs", json={"input": {}})
    assert timed_out.status_code == 504
    assert timed_out.json()["detail"]["kind"] == "timeout"
