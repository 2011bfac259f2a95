"""Small helpers shared by the workflow modules."""

from __future__ import annotations

import inspect
import json
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged.

    Lets steps and hooks be written as plain functions or coroutines.
    """

    if inspect.isawaitable(value):
        return await value
    return value


def audit(value: Any) -> str:
    """Render a value for an error message."""

    if isinstance(value, str):
        return f"'{value}'"
    if isinstance(value, dict | list):
        try:
            return json.dumps(value, default=repr, ensure_ascii=False)
        except (TypeError, ValueError):
            return repr(value)
    return repr(value)
