"""Configuration for tickflow.

Settings are loaded from environment variables prefixed with ``TICKFLOW_`` and
from a local ``.env`` file (if present). Option models validate the plain
mappings accepted by the builder helpers.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tickflow.constants import DEFAULT_TICK_MS
from tickflow.logging import configure_logging


class EngineSettings(BaseSettings):
    """Process-level defaults for engines.

    Environment variables:
    - TICKFLOW_TICK_MS
    - TICKFLOW_LOG_LEVEL
    - TICKFLOW_LOG_JSON
    - TICKFLOW_ENGINE_NAME
    """

    tick_ms: int = Field(
        default=DEFAULT_TICK_MS,
        gt=0,
        description="Interval between controller ticks, in milliseconds",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )
    log_json: bool = Field(
        default=True,
        description="Emit JSON log lines instead of plain text",
    )
    engine_name: str | None = Field(
        default=None,
        description="Name reported by engines built from these settings",
    )

    model_config = SettingsConfigDict(
        env_prefix="TICKFLOW_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, json_output=self.log_json)


class StepOptions(BaseModel):
    """Raw ``{name, handle}`` entry accepted wherever a Step is expected."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    handle: Callable[..., Any] | None = None


class EngineOptions(BaseModel):
    """Options for ``create_engine``.

    ``tick_ms`` is left unset by default so each flow keeps its own interval.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    name: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    flows: list[Any] = Field(default_factory=list)
    tick_ms: int | None = Field(default=None, gt=0)
