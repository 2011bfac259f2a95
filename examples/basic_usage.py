#!/usr/bin/env python3
"""Programmatic flow example.

This demonstrates using tickflow directly:

* load settings from `.env` / `TICKFLOW_*` environment variables
* register a flow on an engine
* dispatch it and wait for the result

A step retries itself by returning its own name until the context says it is done.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Sequence

from tickflow import Engine, EngineSettings, Flow, Step


class CountdownFlow(Flow):
    name = "countdown"

    def __init__(self) -> None:
        super().__init__(
            steps=[
                Step("start", self.start),
                Step("tick", self.tick),
                Step("liftoff", self.liftoff),
            ]
        )

    def start(self, previous, next, resolve, scope) -> None:  # noqa: A002
        print(f"Counting down from {scope.context['count']}")

    async def tick(self, previous, next, resolve, scope) -> str | None:  # noqa: A002
        scope.context["count"] -= 1
        print(scope.context["count"])
        return "tick" if scope.context["count"] > 0 else None

    def liftoff(self, previous, next, resolve, scope) -> None:  # noqa: A002
        print("Liftoff!")

    def on_before_finish(self, result: Any) -> None:
        print(f"Flow {self.name!r} finished with {result!r}")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a countdown flow (programmatic example).")
    parser.add_argument("--count", type=int, default=3, help="Number to count down from")
    return parser.parse_args(argv)


async def _run(count: int) -> Any:
    settings = EngineSettings()
    settings.setup_logging()

    engine = Engine.from_settings(settings).add_flow(CountdownFlow)
    return await engine.dispatch("countdown", {"count": count})


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    asyncio.run(_run(args.count))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
