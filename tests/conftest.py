"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import pytest

from tickflow.workflow.scheduler import ManualTicker
from tickflow.workflow.step import Step


@pytest.fixture
def ticker() -> ManualTicker:
    """Provide a deterministic ticker."""
    return ManualTicker()


class Recorder:
    """Builds steps that record each visit and return scripted results."""

    def __init__(self) -> None:
        self.visits: list[str] = []

    def step(self, name: str, *results: Any) -> Step:
        """A step returning ``results`` in order on each visit, then ``None``."""
        script = list(results)

        async def handler(previous, next, resolve, scope):  # noqa: A002
            self.visits.append(name)
            return script.pop(0) if script else None

        return Step(name=name, handler=handler)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    """Put the root logger back the way it was after a test reconfigures it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
