"""Shared constants."""

from __future__ import annotations

DEFAULT_TICK_MS: int = 50

# Value a run settles with when the cursor walks off the end of the step list.
FLOW_SUCCESS = "success"

# A Flow whose name equals this is a template and cannot be run.
BASE_FLOW_NAME = "flow"
