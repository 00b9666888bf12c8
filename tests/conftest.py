"""Test configuration and fixtures."""

from __future__ import annotations

import random

import pytest

from workflow_orchestrator.content import build_registry
from workflow_orchestrator.orchestrator.workflow import (
    EngineOptions,
    RecordingEventSink,
    RunContext,
    WorkflowRegistry,
)


@pytest.fixture
def recorder() -> RecordingEventSink:
    """Provide an event sink that keeps every event."""
    return RecordingEventSink()


@pytest.fixture
def run_context(recorder: RecordingEventSink) -> RunContext:
    """Provide a fresh run context wired to the recorder."""
    return RunContext(run_id="run-1", workflow_id="wf-test", events=recorder)


@pytest.fixture
def fast_options() -> EngineOptions:
    """Provide engine options with a short cancellation grace period."""
    return EngineOptions(cancel_grace_seconds=1.0)


@pytest.fixture
def content_registry() -> WorkflowRegistry:
    """Provide the content workflows with a seeded random source."""
    return build_registry(rng=random.Random(7))


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep a developer's `.env` and WORKFLOW_* variables out of the tests."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "WORKFLOW_LOG_LEVEL",
        "WORKFLOW_LOG_FORMAT",
        "WORKFLOW_FAILURE_POLICY",
        "WORKFLOW_CANCEL_GRACE_SECONDS",
        "WORKFLOW_STEP_TIMEOUT_SECONDS",
        "WORKFLOW_STRICT_COMMIT",
        "WORKFLOW_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
