"""Unit tests for flows, their hooks and run handles."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from tickflow.constants import FLOW_SUCCESS
from tickflow.errors import AbstractFlowError, StepDefinitionError
from tickflow.workflow.flow import Flow
from tickflow.workflow.scheduler import ManualTicker
from tickflow.workflow.state import RunState
from tickflow.workflow.step import Step


class RecordingFlow(Flow):
    name = "recording"

    def __init__(self) -> None:
        super().__init__()
        self.events: list[str] = []
        self.add_step({"name": "first", "handle": self.first})
        self.add_step({"name": "second", "handle": self.second})

    async def on_create(self) -> None:
        self.events.append("create")

    async def on_before_finish(self, result: Any) -> None:
        self.events.append(f"finish:{result}")

    def first(self, previous, next, resolve, scope):  # noqa: A002
        self.events.append("first")
        scope.context["seen_by"] = scope.flow.name

    def second(self, previous, next, resolve, scope):  # noqa: A002
        self.events.append("second")


def test_base_flow_is_abstract() -> None:
    flow = Flow()

    assert flow.is_abstract
    with pytest.raises(AbstractFlowError):
        flow.run()


def test_named_flow_with_matching_abstract_name_is_abstract() -> None:
    flow = Flow(name="template", abstract_name="template")
    with pytest.raises(AbstractFlowError):
        flow.run()


@pytest.mark.asyncio
async def test_hooks_wrap_the_run(ticker: ManualTicker) -> None:
    flow = RecordingFlow()
    context: dict[str, Any] = {}

    run = flow.run(context, ticker=ticker)
    await ticker.run_until_closed()

    assert await run == FLOW_SUCCESS
    assert flow.events == ["create", "first", "second", f"finish:{FLOW_SUCCESS}"]
    assert context == {"seen_by": "recording"}
    assert run.state == RunState.SUCCEEDED


@pytest.mark.asyncio
async def test_controller_gets_bound_copies_of_the_steps(ticker: ManualTicker) -> None:
    flow = RecordingFlow()

    run = flow.run(ticker=ticker)
    await ticker.run_until_closed()
    await run

    assert run.controller is not None
    assert [s.owner for s in run.controller.steps] == [flow, flow]
    assert [s.owner for s in flow.steps] == [None, None]


@pytest.mark.asyncio
async def test_stop_before_the_controller_exists_is_applied(ticker: ManualTicker) -> None:
    flow = RecordingFlow()

    run = flow.run(ticker=ticker)
    run.stop("cancelled")
    assert run.controller is None
    await ticker.run_until_closed()

    assert await run == "cancelled"
    assert flow.events == ["create", "finish:cancelled"]
    assert run.state == RunState.STOPPED


@pytest.mark.asyncio
async def test_on_create_failure_never_builds_a_controller() -> None:
    class BrokenCreate(Flow):
        name = "broken-create"

        def on_create(self) -> None:
            raise RuntimeError("cannot start")

    run = BrokenCreate(steps=[Step("a")]).run()

    with pytest.raises(RuntimeError, match="cannot start"):
        await run
    assert run.controller is None
    assert run.state == RunState.FAILED


@pytest.mark.asyncio
async def test_step_error_surfaces_through_default_on_error(ticker: ManualTicker) -> None:
    error = LookupError("no data")

    async def fail(previous, next, resolve, scope):  # noqa: A002
        raise error

    flow = Flow(name="failing", steps=[Step("fail", fail)])
    run = flow.run(ticker=ticker)
    await ticker.run_until_closed()

    with pytest.raises(LookupError) as excinfo:
        await run.wait()
    assert excinfo.value is error
    assert run.state == RunState.FAILED


@pytest.mark.asyncio
async def test_on_error_can_replace_the_result(ticker: ManualTicker) -> None:
    class Forgiving(Flow):
        name = "forgiving"

        def __init__(self) -> None:
            super().__init__(steps=[Step("fail", self.fail)])
            self.errors: list[Exception] = []

        def fail(self, previous, next, resolve, scope):  # noqa: A002
            raise ValueError("bad input")

        async def on_error(self, error: Exception) -> str:
            self.errors.append(error)
            return "recovered"

    flow = Forgiving()
    run = flow.run(ticker=ticker)
    await ticker.run_until_closed()

    assert await run == "recovered"
    assert [type(e) for e in flow.errors] == [ValueError]


@pytest.mark.asyncio
async def test_on_before_finish_errors_go_through_on_error(ticker: ManualTicker) -> None:
    class FinishFails(Flow):
        name = "finish-fails"

        def __init__(self) -> None:
            super().__init__(steps=[Step("a")])
            self.handled: list[str] = []

        def on_before_finish(self, result: Any) -> None:
            raise RuntimeError(f"finish failed after {result}")

        def on_error(self, error: Exception) -> None:
            self.handled.append(str(error))

    flow = FinishFails()
    run = flow.run(ticker=ticker)
    await ticker.run_until_closed()

    assert await run is None
    assert flow.handled == [f"finish failed after {FLOW_SUCCESS}"]


@pytest.mark.asyncio
async def test_concurrent_runs_of_one_flow_are_independent() -> None:
    visits: list[tuple[str, str]] = []

    async def visit(previous, next, resolve, scope):  # noqa: A002
        visits.append((scope.context["run"], "a" if previous is None else "b"))

    flow = Flow(name="shared", steps=[Step("a", visit), Step("b", visit)])
    left_ticker, right_ticker = ManualTicker(), ManualTicker()

    left = flow.run({"run": "left"}, ticker=left_ticker)
    right = flow.run({"run": "right"}, ticker=right_ticker)

    await left_ticker.advance()
    await right_ticker.run_until_closed()
    assert await right == FLOW_SUCCESS
    assert not left.done()

    await left_ticker.run_until_closed()
    assert await left == FLOW_SUCCESS
    assert visits == [("left", "a"), ("right", "a"), ("right", "b"), ("left", "b")]
    assert left.controller is not right.controller


def test_add_step_normalizes_and_orders_entries() -> None:
    flow = Flow(name="ordered", steps=[{"name": "b"}])

    flow.add_step(Step("c")).add_step({"name": "a"}, default=True)

    assert [s.name for s in flow.steps] == ["a", "b", "c"]


def test_set_steps_replaces_the_list() -> None:
    flow = Flow(name="replace", steps=[Step("old")])
    flow.set_steps([{"name": "new"}])
    assert [s.name for s in flow.steps] == ["new"]


def test_malformed_step_fails_at_registration() -> None:
    flow = Flow(name="strict")
    with pytest.raises(StepDefinitionError):
        flow.add_step({"handle": lambda *a: None})
    assert flow.steps == []


def test_class_level_steps_are_copied_per_instance() -> None:
    class Declared(Flow):
        name = "declared"
        steps = [{"name": "one"}, {"name": "two"}]

    first, second = Declared(), Declared()
    first.add_step(Step("three"))

    assert [s.name for s in first.steps] == ["one", "two", "three"]
    assert [s.name for s in second.steps] == ["one", "two"]


@pytest.mark.asyncio
async def test_flow_tick_is_used_when_no_ticker_is_given() -> None:
    flow = Flow(name="fast", steps=[Step("a")], tick_ms=1)

    run = flow.run()

    assert await asyncio.wait_for(run.wait(), timeout=5) == FLOW_SUCCESS
    assert run.controller is not None
    assert run.controller.tick_ms == 1


@pytest.mark.asyncio
async def test_cancelling_during_on_before_finish_settles_the_run(ticker: ManualTicker) -> None:
    entered = asyncio.Event()

    class SlowFinish(Flow):
        name = "slow-finish"

        async def on_before_finish(self, result: Any) -> None:
            entered.set()
            await asyncio.Event().wait()

    run = SlowFinish(steps=[Step("a")]).run(ticker=ticker)
    await ticker.run_until_closed()
    await entered.wait()

    assert run.controller is not None
    assert run.controller.state == RunState.SUCCEEDED
    assert run.state == RunState.RUNNING
    assert not run.done()

    assert run._task is not None
    run._task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await run
    assert run.done()
    assert run.state == RunState.FAILED


@pytest.mark.asyncio
async def test_cancelling_during_on_error_settles_the_run(ticker: ManualTicker) -> None:
    entered = asyncio.Event()

    async def fail(previous, next, resolve, scope):  # noqa: A002
        raise ValueError("bad input")

    class SlowRecovery(Flow):
        name = "slow-recovery"

        async def on_error(self, error: Exception) -> None:
            entered.set()
            await asyncio.Event().wait()

    run = SlowRecovery(steps=[Step("fail", fail)]).run(ticker=ticker)
    await ticker.run_until_closed()
    await entered.wait()

    assert run._task is not None
    run._task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await run
    assert run.state == RunState.FAILED


@pytest.mark.asyncio
async def test_state_is_failed_when_on_before_finish_fails(ticker: ManualTicker) -> None:
    class FinishFails(Flow):
        name = "finish-fails-default"

        def on_before_finish(self, result: Any) -> None:
            raise RuntimeError("cannot finish")

    run = FinishFails(steps=[Step("a")]).run(ticker=ticker)
    await ticker.run_until_closed()

    with pytest.raises(RuntimeError, match="cannot finish"):
        await run
    assert run.controller is not None
    assert run.controller.state == RunState.SUCCEEDED
    assert run.state == RunState.FAILED


@pytest.mark.asyncio
async def test_state_is_succeeded_when_on_error_recovers_from_on_create() -> None:
    class RecoversCreate(Flow):
        name = "recovers-create"

        def on_create(self) -> None:
            raise RuntimeError("cannot start")

        def on_error(self, error: Exception) -> str:
            return "fallback"

    run = RecoversCreate(steps=[Step("a")]).run()

    assert await run == "fallback"
    assert run.controller is None
    assert run.state == RunState.SUCCEEDED


@pytest.mark.asyncio
async def test_state_is_idle_until_the_controller_starts(ticker: ManualTicker) -> None:
    run = RecordingFlow().run(ticker=ticker)

    assert run.state == RunState.IDLE
    await ticker.run_until_closed()
    await run
    assert run.state == RunState.SUCCEEDED
