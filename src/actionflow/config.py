"""Configuration for workflows.

Configuration is loaded from:
- environment variables (prefixed with ``ACTIONFLOW_``)
- and a local `.env` file (if present)
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from actionflow.logging import LogLevel


class WorkflowSettings(BaseSettings):
    """Defaults applied to newly created workflows.

    Environment variables:
    - ACTIONFLOW_LOG_LEVEL           (optional, e.g. "debug" or "7")
    - ACTIONFLOW_PYTHON_LOG_LEVEL    (optional)
    - ACTIONFLOW_FORWARD_TO_LOGGING  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `WorkflowSettings(_env_file=path_to_env)`.
    """

    log_level: LogLevel = Field(
        default=LogLevel.NOTICE,
        description="Minimum severity a workflow log message needs to reach the loggers",
    )
    python_log_level: str = Field(
        default="INFO",
        description="Root level used by configure_logging() (stdlib or workflow level name)",
    )
    forward_to_logging: bool = Field(
        default=False,
        description="Register a StdlibLogSink on every new workflow",
    )

    model_config = SettingsConfigDict(
        env_prefix="ACTIONFLOW_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: Any) -> LogLevel:
        return LogLevel.parse(value)
