from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tickflow.errors import IllegalTransitionError


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"


ALLOWED_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.RUNNING},
    RunState.RUNNING: {RunState.SUCCEEDED, RunState.FAILED, RunState.STOPPED},
    RunState.SUCCEEDED: set(),
    RunState.FAILED: set(),
    RunState.STOPPED: set(),
}

TERMINAL_STATES: frozenset[RunState] = frozenset(
    {RunState.SUCCEEDED, RunState.FAILED, RunState.STOPPED}
)


def transition(*, current: RunState, to: RunState) -> RunState:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    """Point-in-time view of a controller, for logs and inspection."""

    state: RunState
    cursor: int
    step_name: str | None
    ticks: int

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "state": self.state.value,
            "cursor": self.cursor,
            "ticks": self.ticks,
        }
        if self.step_name is not None:
            out["step"] = self.step_name
        return out
