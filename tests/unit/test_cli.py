"""Tests for the command-line entry point."""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path

import pytest

from workflow_orchestrator.content import build_registry
from workflow_orchestrator.orchestrator.main import (
    EXIT_OK,
    EXIT_USAGE,
    EXIT_WORKFLOW_ERROR,
    main,
)
from workflow_orchestrator.orchestrator.workflow import WorkflowRegistry


@pytest.fixture(autouse=True)
def _restore_root_logger():
    # main() reconfigures the root logger; put pytest's handlers back afterwards.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def registry() -> WorkflowRegistry:
    return build_registry(rng=random.Random(11))


def test_list(registry: WorkflowRegistry, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["list"], registry=registry) == EXIT_OK

    listed = json.loads(capsys.readouterr().out)
    assert [w["id"] for w in listed] == [
        "conditional-content-workflow",
        "parallel-analysis-workflow",
    ]


def test_describe(registry: WorkflowRegistry, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["describe", "parallel-analysis-workflow"], registry=registry) == EXIT_OK

    described = json.loads(capsys.readouterr().out)
    assert described["state"] == "committed"
    assert described["stages"] == [
        {
            "kind": "parallel",
            "steps": ["seo-analysis", "readability-analysis", "sentiment-analysis"],
            "policy": None,
        },
        {"kind": "step", "steps": ["combine-results"]},
    ]


def test_run_with_inline_input(
    registry: WorkflowRegistry, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(
        [
            "run",
            "conditional-content-workflow",
            "--input",
            '{"content": "A great day."}',
            "--run-id",
            "cli-1",
            "--events",
        ],
        registry=registry,
    )

    assert code == EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["run_id"] == "cli-1"
    assert payload["output"]["quick-processing"]["summary"] == "Quick summary of 3 word article"
    kinds = [e["kind"] for e in payload["events"]]
    assert kinds[0] == "run_started"
    assert kinds[-1] == "run_completed"
    assert "branch_evaluated" in kinds


def test_run_with_input_file(
    registry: WorkflowRegistry, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = tmp_path / "input.json"
    source.write_text(json.dumps({"content": "Awful and terrible news."}), encoding="utf-8")

    code = main(
        ["run", "parallel-analysis-workflow", "--input-file", str(source)], registry=registry
    )

    assert code == EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["output"]["results"]["sentiment"]["sentiment"] == "negative"
    assert "events" not in payload


def test_invalid_json_is_a_usage_error(
    registry: WorkflowRegistry, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["run", "conditional-content-workflow", "--input", "{nope"], registry=registry)

    assert code == EXIT_USAGE
    assert "Invalid input" in capsys.readouterr().err


def test_workflow_error_is_reported_on_stderr(
    registry: WorkflowRegistry, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(
        ["run", "conditional-content-workflow", "--input", '{"content": 42}'], registry=registry
    )

    assert code == EXIT_WORKFLOW_ERROR
    err_lines = [line for line in capsys.readouterr().err.splitlines() if line.startswith('{"error"')]
    error = json.loads(err_lines[-1])["error"]
    assert error["kind"] == "validation"
    assert error["boundary"] == "input"
    assert error["issues"][0]["path"] == "content"


def test_unknown_workflow(registry: WorkflowRegistry, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["describe", "missing"], registry=registry) == EXIT_WORKFLOW_ERROR
    assert "Unknown workflow 'missing'" in capsys.readouterr().err


def test_invalid_settings_are_a_usage_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("WORKFLOW_FAILURE_POLICY", "sometimes")

    assert main(["list"]) == EXIT_USAGE
    assert "Invalid configuration" in capsys.readouterr().err
