"""Sequential step execution.

- ``Step``: a named handler
- ``Controller``: one tick-driven run over a step list
- ``Flow``: a reusable step list with lifecycle hooks
- ``Engine``: a registry of flows, dispatched by name or value
"""

from tickflow.workflow.controller import Controller
from tickflow.workflow.engine import Engine, FlowLike, StepLike, create_engine, ensure_flow
from tickflow.workflow.flow import Flow, FlowRun
from tickflow.workflow.result import ResultCell
from tickflow.workflow.scheduler import AsyncioTicker, ManualTicker, Ticker
from tickflow.workflow.state import RunSnapshot, RunState
from tickflow.workflow.step import (
    Advance,
    Directive,
    Jump,
    Step,
    StepScope,
    default_step_handler,
    ensure_step,
)

__all__ = [
    "Advance",
    "AsyncioTicker",
    "Controller",
    "Directive",
    "Engine",
    "Flow",
    "FlowLike",
    "FlowRun",
    "Jump",
    "ManualTicker",
    "ResultCell",
    "RunSnapshot",
    "RunState",
    "Step",
    "StepLike",
    "StepScope",
    "Ticker",
    "create_engine",
    "default_step_handler",
    "ensure_flow",
    "ensure_step",
]
