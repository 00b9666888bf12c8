"""Workflow Orchestrator.

Composes typed steps into sequential, branching and parallel stages, validating
every value that crosses a step boundary. Ships with:
- the orchestration engine (`workflow_orchestrator.orchestrator.workflow`)
- configuration loaded from `.env` and structured logging
- a CLI, a thin FastAPI adapter and two content workflows
"""

__version__ = "0.1.0"

from workflow_orchestrator.orchestrator.config import OrchestratorSettings

__all__ = ["__version__", "OrchestratorSettings"]
