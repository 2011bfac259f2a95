"""Flows: reusable, named step lists with lifecycle hooks.

Subclass ``Flow`` (or instantiate it with a name) and register steps. Each call
to ``run()`` builds a fresh controller from a copy of the steps, so concurrent
runs of one flow never share cursor state.

Hook order for one run::

    on_create() -> controller.run() -> on_before_finish(result)
                         \\                    \\
                          +-> on_error(exc) <--+

Hooks may be plain methods or coroutines. ``on_error`` re-raises by default; an
override that returns instead settles the run with the returned value.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Self

from tickflow.config import StepOptions
from tickflow.constants import BASE_FLOW_NAME, DEFAULT_TICK_MS
from tickflow.errors import AbstractFlowError
from tickflow.utils import maybe_await
from tickflow.workflow.controller import Controller
from tickflow.workflow.result import ResultCell
from tickflow.workflow.scheduler import Ticker
from tickflow.workflow.state import RunState
from tickflow.workflow.step import Step, ensure_step

logger = logging.getLogger(__name__)

StepOrOptions = Step | StepOptions | Mapping[str, Any]


class FlowRun:
    """Handle returned by ``Flow.run()``.

    The controller only exists once ``on_create`` has finished; a ``stop()``
    issued before that is remembered and applied as soon as it does.
    """

    def __init__(self, flow: Flow, context: dict[str, Any]) -> None:
        self.flow = flow
        self.context = context
        self.controller: Controller | None = None
        self.outcome = ResultCell()
        self._stop_requested = False
        self._stop_value: Any = None
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"FlowRun(flow={self.flow.name!r}, state={self.state.value!r})"

    @property
    def state(self) -> RunState:
        """State of the whole run, finish hooks included.

        A run is only terminal once its outcome is settled, and the outcome
        decides which terminal state it is.
        """
        if self.outcome.done():
            if self.outcome.exception() is not None:
                return RunState.FAILED
            if self.controller is not None and self.controller.state == RunState.STOPPED:
                return RunState.STOPPED
            return RunState.SUCCEEDED
        if self.controller is None or self.controller.state == RunState.IDLE:
            return RunState.IDLE
        return RunState.RUNNING

    def stop(self, value: Any = None) -> None:
        if self.controller is not None:
            self.controller.stop(value)
            return
        self._stop_requested = True
        self._stop_value = value

    def done(self) -> bool:
        return self.outcome.done()

    async def wait(self) -> Any:
        """Wait for the run, including its finish hooks, to settle."""
        return await self.outcome.wait()

    def __await__(self):
        return self.wait().__await__()

    def _attach(self, controller: Controller) -> None:
        self.controller = controller
        if self._stop_requested:
            controller.stop(self._stop_value)


class Flow:
    name: str = BASE_FLOW_NAME
    abstract_name: str = BASE_FLOW_NAME
    tick_ms: float = DEFAULT_TICK_MS

    def __init__(
        self,
        name: str | None = None,
        steps: Iterable[StepOrOptions] | None = None,
        *,
        abstract_name: str | None = None,
        tick_ms: float | None = None,
    ) -> None:
        if name is not None:
            self.name = name
        if abstract_name is not None:
            self.abstract_name = abstract_name
        if tick_ms is not None:
            self.tick_ms = tick_ms
        # Subclasses may declare ``steps`` as a class attribute; copy it per instance.
        declared = getattr(type(self), "steps", None)
        self.steps: list[Step] = []
        if steps is not None:
            self.set_steps(steps)
        elif isinstance(declared, list | tuple):
            self.set_steps(declared)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, steps={[s.name for s in self.steps]!r})"

    @property
    def is_abstract(self) -> bool:
        return self.name == self.abstract_name

    def set_name(self, value: str) -> Self:
        self.name = value
        return self

    def set_abstract_name(self, value: str) -> Self:
        self.abstract_name = value
        return self

    def set_steps(self, values: Iterable[StepOrOptions]) -> Self:
        self.steps = [ensure_step(v) for v in values]
        return self

    def add_step(self, value: StepOrOptions, default: bool = False) -> Self:
        """Append a step; ``default=True`` makes it the first step instead."""
        step = ensure_step(value)
        if default:
            self.steps.insert(0, step)
        else:
            self.steps.append(step)
        return self

    # Hooks

    def on_create(self) -> Any:
        """Called before the controller is built."""

    def on_before_finish(self, result: Any) -> Any:
        """Called with the success or stop value before the run settles."""

    def on_error(self, error: Exception) -> Any:
        raise error

    # Running

    def create_controller(
        self,
        context: dict[str, Any],
        *,
        tick_ms: float | None = None,
        ticker: Ticker | None = None,
    ) -> Controller:
        return Controller(
            [step.bind(self) for step in self.steps],
            context,
            tick_ms=tick_ms if tick_ms is not None else self.tick_ms,
            ticker=ticker,
            name=self.name,
        )

    def run(
        self,
        context: dict[str, Any] | None = None,
        *,
        tick_ms: float | None = None,
        ticker: Ticker | None = None,
    ) -> FlowRun:
        """Start a run on the current event loop and return its handle.

        Must be called from within a running event loop.

        Raises:
            AbstractFlowError: The flow is a template (``name == abstract_name``).
        """

        if self.is_abstract:
            raise AbstractFlowError(
                f"Unable to start {self.name!r} flow: the flow is abstract. "
                "Give the implementing flow a different name."
            )

        handle = FlowRun(self, context if context is not None else {})
        loop = asyncio.get_running_loop()
        handle._task = loop.create_task(
            self._drive(handle, tick_ms=tick_ms, ticker=ticker),
            name=f"tickflow-{self.name}",
        )
        return handle

    async def _drive(
        self,
        handle: FlowRun,
        *,
        tick_ms: float | None,
        ticker: Ticker | None,
    ) -> None:
        try:
            await self._run_hooks(handle, tick_ms=tick_ms, ticker=ticker)
        except asyncio.CancelledError as e:
            # Cancellation can land in any hook; the outcome still settles once.
            if not handle.outcome.done():
                handle.outcome.set_exception(e)
            raise

    async def _run_hooks(
        self,
        handle: FlowRun,
        *,
        tick_ms: float | None,
        ticker: Ticker | None,
    ) -> None:
        try:
            await maybe_await(self.on_create())
            controller = self.create_controller(handle.context, tick_ms=tick_ms, ticker=ticker)
            handle._attach(controller)
            value = await controller.run()
        except Exception as e:
            await self._settle_error(handle, e)
            return

        try:
            await maybe_await(self.on_before_finish(value))
        except Exception as e:
            logger.warning(
                "on_before_finish failed", extra={"flow": self.name}, exc_info=True
            )
            await self._settle_error(handle, e)
            return

        handle.outcome.set_result(value)

    async def _settle_error(self, handle: FlowRun, error: Exception) -> None:
        try:
            replacement = await maybe_await(self.on_error(error))
        except Exception as e:
            handle.outcome.set_exception(e)
        else:
            logger.info(
                "Run error handled by on_error",
                extra={"flow": self.name, "error": repr(error)},
            )
            handle.outcome.set_result(replacement)
