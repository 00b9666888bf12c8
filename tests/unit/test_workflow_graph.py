"""Unit tests for the workflow builder lifecycle, commit checks and sequential runs."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel

from workflow_orchestrator.orchestrator.workflow import (
    EngineOptions,
    RecordingEventSink,
    StepContext,
    StepExecutionError,
    StructuralError,
    ValidationError,
    Workflow,
    WorkflowState,
    create_step,
)


class Number(BaseModel):
    value: int


class Text(BaseModel):
    text: str


class Wrapped(BaseModel):
    number: Number | None = None


def adder(step_id: str, amount: int, calls: list[str] | None = None):
    def execute(n: Number, _ctx: StepContext) -> Number:
        if calls is not None:
            calls.append(step_id)
        return Number(value=n.value + amount)

    return create_step(id=step_id, input=Number, output=Number, execute=execute)


def failing(step_id: str, calls: list[str]):
    def execute(_n: Number, _ctx: StepContext) -> Number:
        calls.append(step_id)
        raise RuntimeError(f"{step_id} failed")

    return create_step(id=step_id, input=Number, output=Number, execute=execute)


@pytest.mark.asyncio
async def test_sequential_stages_compose() -> None:
    calls: list[str] = []
    wf = (
        Workflow("seq", input=Number, output=Number)
        .then(adder("a", 1, calls))
        .then(adder("b", 10, calls))
        .commit()
    )

    out = await wf.run({"value": 1})

    assert out == Number(value=12)
    assert calls == ["a", "b"]
    assert wf.state is WorkflowState.COMMITTED


@pytest.mark.asyncio
async def test_failure_stops_later_stages() -> None:
    calls: list[str] = []
    wf = (
        Workflow("seq", input=Number, output=Number)
        .then(adder("a", 1, calls))
        .then(failing("b", calls))
        .then(adder("c", 1, calls))
        .commit()
    )

    with pytest.raises(StepExecutionError) as info:
        await wf.run({"value": 1}, run_id="r-42")

    assert calls == ["a", "b"]
    err = info.value
    assert err.step_id == "b"
    assert err.stage_index == 1
    assert err.workflow_id == "seq"
    assert err.run_id == "r-42"


@pytest.mark.asyncio
async def test_workflow_input_is_validated_before_any_step() -> None:
    calls: list[str] = []
    wf = Workflow("seq", input=Number, output=Number).then(adder("a", 1, calls)).commit()

    with pytest.raises(ValidationError) as info:
        await wf.run({"value": "x"})

    assert info.value.boundary == "input"
    assert info.value.step_id is None
    assert info.value.workflow_id == "seq"
    assert info.value.stage_index is None
    assert calls == []


@pytest.mark.asyncio
async def test_run_before_commit_is_structural_error() -> None:
    calls: list[str] = []
    wf = Workflow("seq", input=Number, output=Number).then(adder("a", 1, calls))

    with pytest.raises(StructuralError):
        await wf.run({"value": 1})
    assert calls == []


def test_append_after_commit_is_rejected() -> None:
    wf = Workflow("seq", input=Number, output=Number).then(adder("a", 1)).commit()

    with pytest.raises(StructuralError):
        wf.then(adder("b", 1))
    with pytest.raises(StructuralError):
        wf.parallel([adder("c", 1)])
    with pytest.raises(StructuralError):
        wf.branch([(lambda _v: True, adder("d", 1))])
    with pytest.raises(StructuralError):
        wf.register(adder("e", 1))
    with pytest.raises(StructuralError):
        wf.commit()
    assert len(wf.stages) == 1
    assert "e" not in wf.steps


def test_duplicate_step_ids_detected_at_commit() -> None:
    wf = (
        Workflow("dup", input=Number, output=Number)
        .then(adder("a", 1))
        .then(adder("a", 2))
    )

    with pytest.raises(StructuralError) as info:
        wf.commit()
    assert any("duplicate step id 'a'" in p for p in info.value.problems)
    assert wf.state is WorkflowState.BUILDING


def test_same_step_in_two_stages_detected_at_commit() -> None:
    a = adder("a", 1)
    wf = Workflow("dup", input=Number, output=Number).then(a).then(a)

    with pytest.raises(StructuralError) as info:
        wf.commit()
    assert any("already used" in p for p in info.value.problems)


@pytest.mark.asyncio
async def test_steps_can_be_referenced_by_id() -> None:
    wf = (
        Workflow("refs", input=Number, output=Number, steps=[adder("a", 1)])
        .register(adder("b", 2))
        .then("a")
        .then("b")
        .commit()
    )

    assert await wf.run({"value": 0}) == Number(value=3)
    assert [s["steps"] for s in wf.describe()["stages"]] == [["a"], ["b"]]


def test_dangling_reference_detected_at_commit() -> None:
    wf = Workflow("refs", input=Number, output=Number).then("missing")

    with pytest.raises(StructuralError) as info:
        wf.commit()
    assert info.value.problems == ["stage 0: unknown step 'missing'"]


def test_empty_plan_and_empty_stages_are_rejected() -> None:
    with pytest.raises(StructuralError, match="no stages"):
        Workflow("empty", input=Number, output=Number).commit()
    with pytest.raises(StructuralError, match="no steps"):
        Workflow("p", input=Number, output=Number).parallel([]).commit()
    with pytest.raises(StructuralError, match="no cases"):
        Workflow("b", input=Number, output=Number).branch([]).commit()


def test_incompatible_adjacent_shapes_detected_at_commit() -> None:
    to_text = create_step(
        id="to-text", input=Number, output=Text, execute=lambda n, _c: Text(text=str(n.value))
    )
    wf = Workflow("shapes", input=Number, output=Number).then(to_text).then(adder("a", 1))

    with pytest.raises(StructuralError) as info:
        wf.commit()
    assert info.value.problems == [
        "stage 0 -> step 'a': value: required field is never produced"
    ]


def test_branch_followed_by_required_shape_warns_or_fails_when_strict() -> None:
    def build(options: EngineOptions) -> Workflow:
        keep = create_step(
            id="number", input=Number, output=Number, execute=lambda n, _c: n
        )
        unwrap = create_step(
            id="unwrap",
            input=Wrapped,
            output=Number,
            execute=lambda w, _c: w.number or Number(value=0),
        )
        return (
            Workflow("warn", input=Number, output=Number, options=options)
            .branch([(lambda n: n.value > 0, keep)])
            .then(unwrap)
        )

    relaxed = build(EngineOptions()).commit()
    assert relaxed.warnings == []

    class Strict(BaseModel):
        number: Number

    strict_unwrap = create_step(
        id="unwrap", input=Strict, output=Number, execute=lambda w, _c: w.number
    )
    keep = create_step(id="number", input=Number, output=Number, execute=lambda n, _c: n)
    lenient = (
        Workflow("warn", input=Number, output=Number)
        .branch([(lambda n: n.value > 0, keep)])
        .then(strict_unwrap)
        .commit()
    )
    assert len(lenient.warnings) == 1
    assert "may be absent" in lenient.warnings[0]

    strict = (
        Workflow("warn", input=Number, output=Number, options=EngineOptions(strict_commit=True))
        .branch([(lambda n: n.value > 0, keep)])
        .then(strict_unwrap)
    )
    with pytest.raises(StructuralError):
        strict.commit()


@pytest.mark.asyncio
async def test_run_emits_lifecycle_events(recorder: RecordingEventSink) -> None:
    wf = Workflow("seq", input=Number, output=Number).then(adder("a", 1)).commit()

    await wf.run({"value": 1}, run_id="r1", events=recorder)

    assert recorder.kinds() == [
        "run_started",
        "stage_started",
        "step_started",
        "step_completed",
        "stage_completed",
        "run_completed",
    ]
    assert {e.run_id for e in recorder.events} == {"r1"}
    assert recorder.of_kind("stage_started")[0].data == {"kind": "step"}
    assert recorder.of_kind("stage_completed")[0].data == {"kind": "step"}


@pytest.mark.asyncio
async def test_final_output_is_validated_against_workflow_output() -> None:
    # An optional field feeding a required one passes commit with a warning.
    class MaybeText(BaseModel):
        text: str | None = None

    class NeedsText(BaseModel):
        text: str

    blank = create_step(
        id="blank", input=Number, output=MaybeText, execute=lambda _n, _c: MaybeText()
    )
    wf = Workflow("out", input=Number, output=NeedsText).then(blank).commit()
    assert len(wf.warnings) == 1

    with pytest.raises(ValidationError) as info:
        await wf.run({"value": 1})
    assert info.value.boundary == "output"
    assert info.value.step_id is None


@pytest.mark.asyncio
async def test_concurrent_runs_do_not_share_context() -> None:
    wf = Workflow("seq", input=Number, output=Number).then(adder("a", 1)).commit()

    results = await asyncio.gather(*(wf.run({"value": i}) for i in range(5)))

    assert [r.value for r in results] == [1, 2, 3, 4, 5]
