"""Workflow step-orchestration engine.

This package provides first-class types for:
- Contracts checked at every step boundary
- Steps (typed units of work)
- Branch stages (all matching cases run)
- Parallel stages (fan-out, then join by step id)
- The workflow builder, its commit-time checks and the run loop

Graphs are in-memory and acyclic; a run never outlives its process.
"""

from .branch import Branch, BranchCase, Predicate
from .context import RunContext, StepContext
from .contracts import (
    Contract,
    ContractViolation,
    FieldIssue,
    KeyedContract,
    ModelContract,
    as_contract,
    check_compatible,
)
from .dispatch import EngineOptions, FailurePolicy
from .errors import (
    AggregateError,
    StepExecutionError,
    StepTimeoutError,
    StructuralError,
    UnknownWorkflowError,
    ValidationError,
    WorkflowError,
)
from .events import (
    EventSink,
    FanOutEventSink,
    LoggingEventSink,
    RecordingEventSink,
    RunEvent,
)
from .graph import Workflow, WorkflowState
from .parallel import Parallel
from .registry import WorkflowRegistry
from .steps import Step, create_step, run_step, step

__all__ = [
    "AggregateError",
    "Branch",
    "BranchCase",
    "Contract",
    "ContractViolation",
    "EngineOptions",
    "EventSink",
    "FanOutEventSink",
    "FailurePolicy",
    "FieldIssue",
    "KeyedContract",
    "LoggingEventSink",
    "ModelContract",
    "Parallel",
    "Predicate",
    "RecordingEventSink",
    "RunContext",
    "RunEvent",
    "Step",
    "StepContext",
    "StepExecutionError",
    "StepTimeoutError",
    "StructuralError",
    "UnknownWorkflowError",
    "ValidationError",
    "Workflow",
    "WorkflowError",
    "WorkflowRegistry",
    "WorkflowState",
    "as_contract",
    "check_compatible",
    "create_step",
    "run_step",
    "step",
]
