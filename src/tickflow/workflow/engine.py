"""Engine: a registry of named flows and the entry point for dispatching runs."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, Self, runtime_checkable

from pydantic import ValidationError

from tickflow.config import EngineOptions, EngineSettings
from tickflow.errors import (
    ConfigurationError,
    DuplicateFlowError,
    FlowDefinitionError,
    FlowNotFoundError,
    NoFlowsError,
)
from tickflow.utils import audit
from tickflow.workflow.flow import Flow, FlowRun
from tickflow.workflow.scheduler import Ticker
from tickflow.workflow.step import Step

logger = logging.getLogger(__name__)


@runtime_checkable
class FlowLike(Protocol):
    """Anything with a name that can start a run."""

    name: str

    def run(self, context: dict[str, Any] | None = None, **kwargs: Any) -> FlowRun: ...


@runtime_checkable
class StepLike(Protocol):
    """Anything with a name and a handler-shaped ``handle`` method."""

    name: str

    def handle(self, *args: Any) -> Any: ...


FlowOrClass = Flow | type[Flow]


def ensure_flow(value: FlowOrClass) -> Flow:
    """Return ``value`` if it is a flow, or instantiate it if it is a Flow class."""
    if isinstance(value, type):
        if issubclass(value, Flow):
            return value()
        raise FlowDefinitionError(f"{value.__name__} is not a Flow subclass")
    if isinstance(value, Flow):
        return value
    raise FlowDefinitionError(f"The given value is not a flow: {audit(value)}")


class Engine:
    def __init__(
        self,
        flow: FlowOrClass | None = None,
        context: dict[str, Any] | None = None,
        *,
        name: str | None = None,
        tick_ms: float | None = None,
    ) -> None:
        self.name = name
        self.context: dict[str, Any] = context if context is not None else {}
        self.tick_ms = tick_ms
        self._flows: dict[str, Flow] = {}
        if flow is not None:
            self.add_flow(flow)

    def __repr__(self) -> str:
        return f"Engine(name={self.name!r}, flows={list(self._flows)!r})"

    def __contains__(self, name: object) -> bool:
        return name in self._flows

    def __len__(self) -> int:
        return len(self._flows)

    @classmethod
    def from_settings(cls, settings: EngineSettings | None = None) -> Engine:
        settings = settings or EngineSettings()
        return cls(name=settings.engine_name, tick_ms=settings.tick_ms)

    @property
    def flows(self) -> list[Flow]:
        return list(self._flows.values())

    def set_name(self, value: str | None) -> Self:
        self.name = value
        return self

    def set_context(self, value: dict[str, Any] | None) -> Self:
        self.context = value if value is not None else {}
        return self

    def set_flows(self, values: Iterable[FlowOrClass]) -> Self:
        flows = [ensure_flow(v) for v in values]
        registry: dict[str, Flow] = {}
        for flow in flows:
            if flow.name in registry:
                raise DuplicateFlowError(f"Flow {flow.name!r} is registered twice")
            registry[flow.name] = flow
        self._flows = registry
        return self

    def add_flow(self, value: FlowOrClass, default: bool = False) -> Self:
        """Register a flow; ``default=True`` makes it the flow ``dispatch()`` runs."""
        flow = ensure_flow(value)
        if flow.name in self._flows:
            raise DuplicateFlowError(
                f"Flow {flow.name!r} is already registered in engine {self.name or 'unknown'!r}"
            )
        if default:
            self._flows = {flow.name: flow, **self._flows}
        else:
            self._flows[flow.name] = flow
        return self

    def get_flow(self, name: str) -> Flow | None:
        return self._flows.get(name)

    def dispatch(
        self,
        ref: FlowLike | StepLike | type[Flow] | Step | str | None = None,
        context: dict[str, Any] | None = None,
        *,
        ticker: Ticker | None = None,
    ) -> FlowRun:
        """Start a run and return its handle.

        ``ref`` may be a step or any object with ``name`` and ``handle`` (run
        on its own as a one-step flow), a flow object, the name of a registered
        flow, or ``None`` for the first registered flow. Only the last form
        merges the engine's default context into ``context``.

        Raises:
            FlowNotFoundError: ``ref`` names a flow that is not registered.
            NoFlowsError: ``ref`` is None and no flow is registered.
            AbstractFlowError: The selected flow is a template.
        """

        if isinstance(ref, Step):
            return self._start(_single_step_flow(ref), context, ticker=ticker)

        if isinstance(ref, str):
            found = self.get_flow(ref)
            if found is None:
                raise FlowNotFoundError(flow_name=ref, engine_name=self.name)
            return self._start(found, context, ticker=ticker)

        if isinstance(ref, type):
            ref = ensure_flow(ref)

        if ref is not None:
            if isinstance(ref, FlowLike):
                return self._start(ref, context, ticker=ticker)
            if isinstance(ref, StepLike):
                step = Step(name=ref.name, handler=ref.handle)
                return self._start(_single_step_flow(step), context, ticker=ticker)
            raise FlowDefinitionError(f"Unable to dispatch {audit(ref)}: not a flow or step")

        if not self._flows:
            raise NoFlowsError(
                "Unable to start flow: no flows in engine. "
                "Either register flows or pass the flow directly."
            )
        first = next(iter(self._flows.values()))
        return self._start(first, {**self.context, **(context or {})}, ticker=ticker)

    def _start(
        self,
        flow: FlowLike,
        context: dict[str, Any] | None,
        *,
        ticker: Ticker | None = None,
    ) -> FlowRun:
        logger.info("Dispatching flow", extra={"engine": self.name, "flow": flow.name})
        kwargs: dict[str, Any] = {}
        if self.tick_ms is not None:
            kwargs["tick_ms"] = self.tick_ms
        if ticker is not None:
            kwargs["ticker"] = ticker
        return flow.run(context, **kwargs)


def _single_step_flow(step: Step) -> Flow:
    return Flow(name=step.name, steps=[step], abstract_name=f"{step.name}:abstract")


def create_engine(options: EngineOptions | Mapping[str, Any]) -> Engine:
    """Build an engine from ``EngineOptions`` or an equivalent mapping."""
    if not isinstance(options, EngineOptions):
        try:
            options = EngineOptions.model_validate(dict(options))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid engine options: {e}") from e

    return (
        Engine(name=options.name, tick_ms=options.tick_ms)
        .set_context(options.context)
        .set_flows(options.flows)
    )
