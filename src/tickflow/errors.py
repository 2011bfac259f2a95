"""Exception hierarchy for tickflow.

Configuration errors are raised synchronously while wiring steps, flows and
engines. Everything else terminates a single run and surfaces through its
result.
"""

from __future__ import annotations

from dataclasses import dataclass


class FlowError(Exception):
    """Base class for every error raised by tickflow."""


class ConfigurationError(FlowError, ValueError):
    """Invalid setup detected before a run is scheduled."""


class AbstractFlowError(ConfigurationError):
    pass


class StepDefinitionError(ConfigurationError):
    pass


class FlowDefinitionError(ConfigurationError):
    pass


class DuplicateFlowError(ConfigurationError):
    pass


class NoFlowsError(ConfigurationError):
    pass


@dataclass(frozen=True, slots=True)
class FlowNotFoundError(ConfigurationError, LookupError):
    """Raised when dispatching a flow name the engine does not know."""

    flow_name: str
    engine_name: str | None = None

    def __str__(self) -> str:
        engine = self.engine_name or "unknown"
        return f"Unable to start the flow: flow {self.flow_name!r} does not exist in engine {engine!r}"


@dataclass(frozen=True, slots=True)
class NavigationError(FlowError, LookupError):
    """Raised when a step redirects to a step missing from the active list."""

    target: str

    def __str__(self) -> str:
        return f"Unable to continue flow: step {self.target!r} does not exist in this run"


class InternalWiringError(FlowError, RuntimeError):
    """The controller did not inject a step resolver. Indicates an engine bug."""


class StepResultError(FlowError, TypeError):
    pass


class IllegalTransitionError(FlowError, ValueError):
    pass


class ResultAlreadySetError(FlowError, RuntimeError):
    pass
