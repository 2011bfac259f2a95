"""Single-assignment result cell.

A run settles exactly once: with a value (success or stop) or with an error.
Unlike an ``asyncio.Future`` the cell is not bound to an event loop and never
logs "exception was never retrieved" when nobody awaits it.
"""

from __future__ import annotations

import asyncio
from typing import Any

from tickflow.errors import ResultAlreadySetError

_UNSET: Any = object()


class ResultCell:
    def __init__(self) -> None:
        self._value: Any = _UNSET
        self._error: BaseException | None = None
        self._event = asyncio.Event()

    def done(self) -> bool:
        return self._event.is_set()

    def set_result(self, value: Any) -> None:
        self._check_unset()
        self._value = value
        self._event.set()

    def set_exception(self, error: BaseException) -> None:
        self._check_unset()
        self._error = error
        self._event.set()

    def exception(self) -> BaseException | None:
        return self._error

    def result(self) -> Any:
        """Return the value or raise the stored error. The cell must be settled."""
        if not self.done():
            raise asyncio.InvalidStateError("Result is not set.")
        if self._error is not None:
            raise self._error
        return self._value

    async def wait(self) -> Any:
        await self._event.wait()
        return self.result()

    def _check_unset(self) -> None:
        if self.done():
            raise ResultAlreadySetError("Result cell has already been settled")
