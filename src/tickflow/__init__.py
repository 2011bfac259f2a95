"""tickflow.

A tiny sequential workflow engine:
- ordered, named steps that may jump to each other by name
- a tick-driven controller with cooperative stop
- flows with lifecycle hooks, registered on an engine
"""

__version__ = "0.1.0"

from tickflow.config import EngineOptions, EngineSettings, StepOptions
from tickflow.constants import DEFAULT_TICK_MS, FLOW_SUCCESS
from tickflow.errors import FlowError
from tickflow.workflow import Controller, Engine, Flow, FlowRun, RunState, Step, create_engine

__all__ = [
    "__version__",
    "DEFAULT_TICK_MS",
    "FLOW_SUCCESS",
    "Controller",
    "Engine",
    "EngineOptions",
    "EngineSettings",
    "Flow",
    "FlowError",
    "FlowRun",
    "RunState",
    "Step",
    "StepOptions",
    "create_engine",
]
