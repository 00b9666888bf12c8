"""Steps: typed units of work and the boundary checks around them."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from .context import RunContext, StepContext
from .contracts import Contract, ContractViolation, as_contract
from .errors import StepExecutionError, StepTimeoutError, ValidationError, WorkflowError

logger = logging.getLogger(__name__)

ExecuteFn = Callable[[Any, StepContext], Any | Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Step:
    """A named unit of work with declared input and output contracts.

    ``execute`` receives the validated input and a :class:`StepContext`. It may
    be a plain function or a coroutine function.
    """

    id: str
    input_contract: Contract
    output_contract: Contract
    execute: ExecuteFn
    description: str = ""
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("Step id must be a non-empty string")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"Step '{self.id}' timeout must be positive")


def create_step(
    *,
    id: str,  # noqa: A002
    input: Contract | type[BaseModel],  # noqa: A002
    output: Contract | type[BaseModel],
    execute: ExecuteFn,
    description: str = "",
    timeout_seconds: float | None = None,
) -> Step:
    return Step(
        id=id,
        input_contract=as_contract(input),
        output_contract=as_contract(output),
        execute=execute,
        description=description,
        timeout_seconds=timeout_seconds,
    )


def step(
    id: str,  # noqa: A002
    *,
    input: Contract | type[BaseModel],  # noqa: A002
    output: Contract | type[BaseModel],
    description: str = "",
    timeout_seconds: float | None = None,
) -> Callable[[ExecuteFn], Step]:
    """Decorator form of :func:`create_step`.

    The decorated function's docstring becomes the description when none is
    given.
    """

    def wrap(fn: ExecuteFn) -> Step:
        return create_step(
            id=id,
            input=input,
            output=output,
            execute=fn,
            description=description or inspect.getdoc(fn) or "",
            timeout_seconds=timeout_seconds,
        )

    return wrap


async def run_step(
    step: Step,
    value: Any,
    context: RunContext,
    *,
    default_timeout: float | None = None,
) -> Any:
    """Validate, execute and validate again.

    Raises:
        ValidationError: The input or the produced output broke a contract.
        StepTimeoutError: The configured timeout expired.
        StepExecutionError: The execute function raised.
        StructuralError: The step was already invoked in this run.
    """

    context.claim(step.id)

    try:
        typed_input = step.input_contract.validate(value)
    except ContractViolation as exc:
        error = ValidationError.for_step(step.id, "input", exc.issues)
        context.emit("step_failed", step_id=step.id, error=error.to_dict())
        raise error from exc

    context.emit("step_started", step_id=step.id)
    timeout = step.timeout_seconds if step.timeout_seconds is not None else default_timeout
    try:
        raw = await _invoke_with_timeout(step, typed_input, context.for_step(step.id), timeout)
    except asyncio.CancelledError:
        context.emit("step_cancelled", step_id=step.id)
        raise
    except WorkflowError as exc:
        if exc.step_id is None:
            exc.step_id = step.id
        exc.annotate(run_id=context.run_id)
        context.emit("step_failed", step_id=step.id, error=exc.to_dict())
        raise

    try:
        typed_output = step.output_contract.validate(raw)
    except ContractViolation as exc:
        error = ValidationError.for_step(step.id, "output", exc.issues)
        context.emit("step_failed", step_id=step.id, error=error.to_dict())
        raise error from exc

    context.record_output(step.id, typed_output)
    context.emit("step_completed", step_id=step.id)
    return typed_output


async def _invoke_with_timeout(
    step: Step, typed_input: Any, step_context: StepContext, timeout: float | None
) -> Any:
    if timeout is None:
        return await _invoke(step, typed_input, step_context)

    try:
        async with asyncio.timeout(timeout) as scope:
            return await _invoke(step, typed_input, step_context)
    except TimeoutError as exc:
        if scope.expired():
            raise StepTimeoutError(step.id, timeout, run_id=step_context.run_id) from exc
        raise


async def _invoke(step: Step, typed_input: Any, step_context: StepContext) -> Any:
    try:
        if inspect.iscoroutinefunction(step.execute):
            return await step.execute(typed_input, step_context)
        # Plain functions run in the default executor so they overlap with their
        # siblings and stay under the step timeout. A timed out or cancelled
        # thread is abandoned, not interrupted.
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, functools.partial(step.execute, typed_input, step_context)
        )
        if inspect.isawaitable(result):
            result = await result
        return result
    except (WorkflowError, asyncio.CancelledError):
        raise
    except Exception as exc:
        logger.debug("Step %s raised", step.id, exc_info=True)
        raise StepExecutionError(
            f"Step '{step.id}' failed: {exc}",
            step_id=step.id,
            run_id=step_context.run_id,
        ) from exc
