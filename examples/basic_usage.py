#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the orchestrator components directly:

* load settings from `.env`
* build a small workflow: one step, then a branch whose cases may overlap
* run it and print the events it emitted

Content is passed as an argument.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Sequence

from pydantic import BaseModel

from workflow_orchestrator.orchestrator.config import OrchestratorSettings
from workflow_orchestrator.orchestrator.logging import configure_logging
from workflow_orchestrator.orchestrator.workflow import (
    RecordingEventSink,
    StepContext,
    Workflow,
    WorkflowError,
    step,
)
from workflow_orchestrator.orchestrator.workflow.contracts import to_plain


class Text(BaseModel):
    text: str


class Stats(BaseModel):
    text: str
    words: int


class Shout(BaseModel):
    loud: str


class Whisper(BaseModel):
    quiet: str


class Voices(BaseModel):
    shout: Shout | None = None
    whisper: Whisper | None = None


@step("count", input=Text, output=Stats)
def count(data: Text, context: StepContext) -> Stats:
    """Counts the words in the text."""
    n = len(data.text.split())
    context.emit("counted", words=n)
    return Stats(text=data.text, words=n)


@step("shout", input=Stats, output=Shout)
def shout(data: Stats, _context: StepContext) -> Shout:
    return Shout(loud=data.text.upper())


@step("whisper", input=Stats, output=Whisper)
async def whisper(data: Stats, _context: StepContext) -> Whisper:
    await asyncio.sleep(0.01)
    return Whisper(quiet=data.text.lower())


def build(settings: OrchestratorSettings) -> Workflow:
    return (
        Workflow(
            "voices",
            input=Text,
            output=Voices,
            description="Shout short text, whisper long text, or both",
            options=settings.engine_options(),
        )
        .then(count)
        .branch(
            [
                (lambda s: s.words <= 5, shout),
                (lambda s: s.words >= 3, whisper),
            ]
        )
        .commit()
    )


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a small workflow (programmatic example).")
    parser.add_argument("text", help="Text to run through the workflow")
    return parser.parse_args(argv)


async def _run(workflow: Workflow, text: str) -> int:
    recorder = RecordingEventSink()
    try:
        output = await workflow.run({"text": text}, events=recorder)
    except WorkflowError as exc:
        print(json.dumps({"error": exc.to_dict()}, indent=2))
        return 1

    print(json.dumps(to_plain(output), indent=2))
    for event in recorder.events:
        print(f"{event.kind:<16} {event.step_id or '-'}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = OrchestratorSettings()
    configure_logging(settings.log_level, settings.log_format)

    return asyncio.run(_run(build(settings), args.text))


if __name__ == "__main__":
    raise SystemExit(main())
