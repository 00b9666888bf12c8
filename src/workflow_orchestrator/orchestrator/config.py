"""Configuration for the workflow orchestrator.

Configuration is loaded from:
- environment variables (prefixed with `WORKFLOW_`)
- and a local `.env` file (if present)

Library users who build workflows in code don't need this; they pass
:class:`EngineOptions` directly. The CLI and the HTTP server read settings here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_orchestrator.orchestrator.workflow import EngineOptions, FailurePolicy


class OrchestratorSettings(BaseSettings):
    """Settings for running workflows.

    Environment variables:
    - WORKFLOW_LOG_LEVEL              (optional)
    - WORKFLOW_LOG_FORMAT             (optional, `json` or `text`)
    - WORKFLOW_FAILURE_POLICY         (optional, `fail_fast` or `collect_all`)
    - WORKFLOW_CANCEL_GRACE_SECONDS   (optional)
    - WORKFLOW_STEP_TIMEOUT_SECONDS   (optional)
    - WORKFLOW_STRICT_COMMIT          (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `OrchestratorSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log record format: structured JSON or plain text",
    )

    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.FAIL_FAST,
        description="Default failure policy for branch and parallel stages",
    )
    cancel_grace_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="How long to wait for cancelled sibling steps to stop",
    )
    step_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Timeout applied to steps that don't declare their own (None = no timeout)",
    )
    strict_commit: bool = Field(
        default=False,
        description="Treat shape warnings found at commit time as errors",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )

    def engine_options(self) -> EngineOptions:
        return EngineOptions(
            failure_policy=self.failure_policy,
            cancel_grace_seconds=self.cancel_grace_seconds,
            step_timeout_seconds=self.step_timeout_seconds,
            strict_commit=self.strict_commit,
        )
