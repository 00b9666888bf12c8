"""CLI entrypoint for the workflow orchestrator.

Lists, describes and runs the registered workflows. Output goes to stdout as
JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError as SettingsError

from workflow_orchestrator import __version__
from workflow_orchestrator.content import build_registry
from workflow_orchestrator.orchestrator.config import OrchestratorSettings
from workflow_orchestrator.orchestrator.logging import configure_logging
from workflow_orchestrator.orchestrator.workflow import (
    FanOutEventSink,
    LoggingEventSink,
    RecordingEventSink,
    WorkflowError,
    WorkflowRegistry,
)
from workflow_orchestrator.orchestrator.workflow.contracts import to_plain

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_WORKFLOW_ERROR = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-orchestrator",
        description="Run typed step workflows (sequential, branching and parallel stages)",
    )
    parser.add_argument(
        "--version", action="version", version=f"workflow-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List registered workflows")

    describe = subparsers.add_parser("describe", help="Show the stages of a workflow")
    describe.add_argument("workflow_id", help="Workflow id, e.g. 'conditional-content-workflow'")

    run = subparsers.add_parser("run", help="Run a workflow and print its output")
    run.add_argument("workflow_id", help="Workflow id, e.g. 'conditional-content-workflow'")
    source = run.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", dest="input_json", help="Workflow input as a JSON object")
    source.add_argument(
        "--input-file", type=Path, default=None, help="Path to a JSON file holding the input"
    )
    run.add_argument("--run-id", default=None, help="Run identifier (defaults to a random id)")
    run.add_argument(
        "--events",
        action="store_true",
        help="Include the events emitted during the run in the output",
    )

    return parser


def _load_input(args: argparse.Namespace) -> Any:
    if args.input_file is not None:
        return json.loads(args.input_file.read_text(encoding="utf-8"))
    return json.loads(args.input_json)


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _cmd_list(registry: WorkflowRegistry) -> int:
    _print_json(
        [{"id": w.id, "description": w.description} for w in registry.list()]
    )
    return EXIT_OK


def _cmd_describe(registry: WorkflowRegistry, workflow_id: str) -> int:
    _print_json(registry.get(workflow_id).describe())
    return EXIT_OK


def _cmd_run(registry: WorkflowRegistry, args: argparse.Namespace) -> int:
    try:
        initial_input = _load_input(args)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_USAGE

    run_id = args.run_id or uuid.uuid4().hex
    recorder = RecordingEventSink()
    output = asyncio.run(
        registry.run_workflow(
            args.workflow_id,
            initial_input,
            run_id=run_id,
            events=FanOutEventSink(LoggingEventSink(), recorder),
        )
    )

    payload: dict[str, object] = {
        "workflow_id": args.workflow_id,
        "run_id": run_id,
        "output": to_plain(output),
    }
    if args.events:
        payload["events"] = [e.to_json() for e in recorder.events]
    _print_json(payload)
    return EXIT_OK


def main(
    argv: Sequence[str] | None = None, *, registry: WorkflowRegistry | None = None
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = OrchestratorSettings()
    except SettingsError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(settings.log_level, settings.log_format)
    registry = registry or build_registry(settings.engine_options())

    try:
        if args.command == "list":
            return _cmd_list(registry)
        if args.command == "describe":
            return _cmd_describe(registry, args.workflow_id)
        if args.command == "run":
            return _cmd_run(registry, args)
    except WorkflowError as e:
        logger.error("Workflow failed", extra={"error": e.to_dict()})
        print(json.dumps({"error": e.to_dict()}, ensure_ascii=False, default=str), file=sys.stderr)
        return EXIT_WORKFLOW_ERROR

    parser.error(f"Unknown command: {args.command}")
    return EXIT_USAGE
