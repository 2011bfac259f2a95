"""The controller run-loop.

A controller owns exactly one execution over an ordered list of steps. It waits
for a tick, runs the step under the cursor, moves the cursor according to the
step's directive, and repeats until a stop is requested, the cursor runs off
the end of the list, or something fails.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Self

from tickflow.constants import DEFAULT_TICK_MS, FLOW_SUCCESS
from tickflow.errors import NavigationError, StepResultError
from tickflow.workflow.result import ResultCell
from tickflow.workflow.scheduler import AsyncioTicker, Ticker
from tickflow.workflow.state import TERMINAL_STATES, RunSnapshot, RunState, transition
from tickflow.workflow.step import Advance, Directive, Jump, Step, StepScope

logger = logging.getLogger(__name__)


class Controller:
    """Drives one run of a step list.

    ``run()`` may be awaited once. ``stop()`` may be called at any time from
    outside a handler; it is honoured at the start of the next tick and never
    interrupts a handler that is already running.
    """

    def __init__(
        self,
        steps: Iterable[Step] | None = None,
        context: dict[str, Any] | None = None,
        *,
        tick_ms: float = DEFAULT_TICK_MS,
        ticker: Ticker | None = None,
        name: str | None = None,
    ) -> None:
        self.steps: list[Step] = list(steps) if steps else []
        self.context: dict[str, Any] = context if context is not None else {}
        self.tick_ms = tick_ms
        self.name = name or "controller"
        self.cursor = 0
        self.ticks = 0
        self.state = RunState.IDLE
        self.stopped = False
        self.stop_value: Any = None
        self.result = ResultCell()
        self._ticker = ticker
        self._active: tuple[Step, ...] | None = None

    # Configuration

    def set_tick(self, value: float) -> Self:
        self.tick_ms = value
        return self

    def set_context(self, value: dict[str, Any] | None) -> Self:
        self.context = value if value is not None else {}
        return self

    def set_steps(self, value: Iterable[Step]) -> Self:
        self.steps = list(value)
        return self

    def add_step(self, value: Step) -> Self:
        self.steps.append(value)
        return self

    # Lookup

    @property
    def active_steps(self) -> tuple[Step, ...]:
        """Steps of the current run, or the configured steps before it starts."""
        return self._active if self._active is not None else tuple(self.steps)

    def get_step_index(self, target: Step | str | None) -> int | None:
        if isinstance(target, Step):
            target = target.name
        if not isinstance(target, str):
            return None
        for index, step in enumerate(self.active_steps):
            if step.name == target:
                return index
        return None

    def get_step(self, target: Step | str | None) -> Step | None:
        index = self.get_step_index(target)
        if index is None:
            return None
        return self.active_steps[index]

    def snapshot(self) -> RunSnapshot:
        steps = self.active_steps
        current = steps[self.cursor] if 0 <= self.cursor < len(steps) else None
        return RunSnapshot(
            state=self.state,
            cursor=self.cursor,
            step_name=current.name if current is not None else None,
            ticks=self.ticks,
        )

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    # Lifecycle

    def stop(self, value: Any = None) -> None:
        """Request termination; the run settles as STOPPED with ``value``."""
        if self.done:
            logger.debug(
                "Stop ignored: run already finished",
                extra={"controller": self.name, "state": self.state.value},
            )
            return
        self.stop_value = value
        self.stopped = True

    async def wait(self) -> Any:
        """Wait for the run started elsewhere to settle."""
        return await self.result.wait()

    async def run(self) -> Any:
        """Run the loop to completion.

        Returns ``FLOW_SUCCESS`` when the steps are exhausted or the value
        given to ``stop()``. A handler or navigation error is raised as is.

        Raises:
            IllegalTransitionError: The controller has already been run.
        """

        self.state = transition(current=self.state, to=RunState.RUNNING)
        self._active = tuple(self.steps)
        ticker = self._ticker if self._ticker is not None else AsyncioTicker(self.tick_ms)

        logger.info(
            "Run started",
            extra={"controller": self.name, "steps": [s.name for s in self._active]},
        )

        try:
            while True:
                await ticker.wait()
                self.ticks += 1

                if self.stopped:
                    return self._succeed(RunState.STOPPED, self.stop_value)

                if self.cursor >= len(self._active):
                    return self._succeed(RunState.SUCCEEDED, FLOW_SUCCESS)

                self._apply(await self._handle_current())
        except (Exception, asyncio.CancelledError) as e:
            if not self.done:
                self._fail(e)
            raise
        finally:
            ticker.close()

    async def _handle_current(self) -> Directive:
        steps = self.active_steps
        current = steps[self.cursor]
        previous = steps[self.cursor - 1] if self.cursor > 0 else None
        following = steps[self.cursor + 1] if self.cursor + 1 < len(steps) else None

        logger.debug(
            "Running step",
            extra={"controller": self.name, "step": current.name, "cursor": self.cursor},
        )

        scope = StepScope(flow=current.owner, context=self.context, controller=self)
        return await current.handle(previous, following, self.get_step, scope)

    def _apply(self, directive: Directive) -> None:
        if isinstance(directive, Advance):
            self.cursor += 1
            return
        if not isinstance(directive, Jump):
            raise StepResultError(f"Unsupported step directive: {directive!r}")

        index = self.get_step_index(directive.target)
        if index is None:
            raise NavigationError(target=directive.target)

        logger.debug(
            "Jumping to step",
            extra={
                "controller": self.name,
                "from_cursor": self.cursor,
                "to_cursor": index,
                "step": directive.target,
            },
        )
        self.cursor = index

    def _succeed(self, state: RunState, value: Any) -> Any:
        self.state = transition(current=self.state, to=state)
        logger.info(
            "Run finished",
            extra={"controller": self.name, **self.snapshot().to_json()},
        )
        self.result.set_result(value)
        return value

    def _fail(self, error: BaseException) -> None:
        self.state = transition(current=self.state, to=RunState.FAILED)
        logger.warning(
            "Run failed: %s",
            error,
            extra={"controller": self.name, **self.snapshot().to_json()},
        )
        self.result.set_exception(error)
