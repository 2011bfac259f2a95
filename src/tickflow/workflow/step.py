"""Steps: named units of work executed by a controller.

A step is plain data plus one handler. It does not know where it sits in a
step list; the controller owns the position and passes the neighbours in.

Handlers are called as ``handler(previous, next, resolve, scope)``, trimmed to
as many leading arguments as the handler declares (worked out once, when the
step is built). They may be plain functions or coroutines and return one of:

* ``None``: fall through to the next step in the list,
* a ``Step``: jump to the step with that name,
* a ``str``: jump to the step with that name.

``Step.handle`` turns that loose return value into a ``Directive`` so the
controller never has to inspect handler output itself.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, TypeAlias

from pydantic import ValidationError

from tickflow.config import StepOptions
from tickflow.errors import InternalWiringError, StepDefinitionError, StepResultError
from tickflow.utils import audit, maybe_await

if TYPE_CHECKING:
    from tickflow.workflow.controller import Controller
    from tickflow.workflow.flow import Flow

logger = logging.getLogger(__name__)

StepResolver: TypeAlias = Callable[["Step | str"], "Step | None"]
StepHandler: TypeAlias = Callable[..., Any]

# previous, next, resolve, scope
HANDLER_ARGS = 4


@dataclass(frozen=True, slots=True)
class StepScope:
    """What a handler can see of the run it belongs to.

    ``flow`` is the flow that owns the step (``None`` for steps run on a bare
    controller). ``context`` is the run's shared key-value bag.
    """

    flow: Flow | None
    context: dict[str, Any]
    controller: Controller | None = None


@dataclass(frozen=True, slots=True)
class Advance:
    """Continue with the next step in list order."""


@dataclass(frozen=True, slots=True)
class Jump:
    """Continue with the step named ``target``."""

    target: str


Directive: TypeAlias = Advance | Jump


async def default_step_handler(*_args: Any) -> None:
    return None


def handler_arity(handler: StepHandler) -> int:
    """How many of the handler arguments ``handler`` accepts positionally.

    Handlers may declare any prefix of ``(previous, next, resolve, scope)``,
    including none at all.
    """

    try:
        parameters = inspect.signature(handler).parameters.values()
    except (TypeError, ValueError):
        return HANDLER_ARGS

    count = 0
    for parameter in parameters:
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return HANDLER_ARGS
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return min(count, HANDLER_ARGS)


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    handler: StepHandler = field(default=default_step_handler, compare=False)
    owner: Flow | None = field(default=None, compare=False, repr=False)
    arity: int = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "arity", handler_arity(self.handler))

    def bind(self, owner: Flow | None) -> Step:
        """Return a copy of this step owned by ``owner``."""
        return replace(self, owner=owner)

    async def handle(
        self,
        previous: Step | None = None,
        next: Step | None = None,  # noqa: A002 (mirrors the handler signature)
        resolve: StepResolver | None = None,
        scope: StepScope | None = None,
    ) -> Directive:
        """Run the handler and normalize its return value.

        Raises:
            InternalWiringError: The handler asked for a step by name but no
                resolver was supplied.
            StepResultError: The handler returned an unsupported value.
        """

        def lookup(target: Step | str) -> Step | None:
            if resolve is not None:
                return resolve(target)
            if isinstance(target, str):
                raise InternalWiringError(
                    "Unable to navigate to the next step: no step resolver was passed to "
                    f"Step.handle() for step {self.name!r}"
                )
            return None

        if scope is None:
            scope = StepScope(flow=self.owner, context={})

        args = (previous, next, lookup, scope)[: self.arity]
        result = await maybe_await(self.handler(*args))

        if result is None:
            return Advance()
        if isinstance(result, Step):
            return Jump(target=result.name)
        if isinstance(result, str):
            if resolve is None:
                raise InternalWiringError(
                    f"Step {self.name!r} requested step {result!r} by name, "
                    "but no step resolver was injected"
                )
            return Jump(target=result)
        raise StepResultError(
            f"Step {self.name!r} returned {audit(result)}; expected None, a Step or a step name"
        )


def ensure_step(value: Step | StepOptions | Mapping[str, Any]) -> Step:
    """Normalize a Step, ``StepOptions`` or ``{name, handle}`` mapping into a Step.

    Raises:
        StepDefinitionError: The entry has no usable name or handler.
    """

    if isinstance(value, Step):
        return value

    if isinstance(value, StepOptions):
        options = value
    elif isinstance(value, Mapping):
        try:
            options = StepOptions.model_validate(dict(value))
        except ValidationError as e:
            raise StepDefinitionError(
                f"The given value is not a valid step: {audit(dict(value))}"
            ) from e
    else:
        raise StepDefinitionError(f"The given value is not a step: {audit(value)}")

    return Step(name=options.name, handler=options.handle or default_step_handler)
