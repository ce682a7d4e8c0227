from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from .context import ExecutionContext

Action: TypeAlias = Callable[..., Any]


@runtime_checkable
class ActionExecutor(Protocol):
    """An object that runs one workflow step."""

    def execute(self, ctx: ExecutionContext) -> Any: ...


ActionLike: TypeAlias = "Action | ActionExecutor | None"


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Explicit handoff from an action to the step that runs after it.

    Returning ``ActionResult(None)`` hands off ``None`` on purpose; a plain
    ``None`` return falls back to ``ctx.next_value``.
    """

    next_value: Any = None


@dataclass(frozen=True, slots=True)
class ActionEntry:
    """One registered step: the callback and the receiver it is bound to."""

    action: Action | None
    receiver: Any = None

    @property
    def is_async(self) -> bool:
        return self.action is not None and is_async_callable(self.action)

    @staticmethod
    def from_executor(executor: ActionLike, receiver: Any = None) -> ActionEntry:
        if executor is None:
            return ActionEntry(action=None, receiver=receiver)
        if callable(executor):
            return ActionEntry(action=executor, receiver=receiver)
        if isinstance(executor, ActionExecutor):
            return ActionEntry(action=executor.execute, receiver=receiver)
        raise TypeError(f"Not a workflow action: {executor!r}")


def is_async_callable(func: Callable[..., Any]) -> bool:
    """True for ``async def`` functions, bound methods and callable objects."""
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)  # noqa: B004
    return call is not None and inspect.iscoroutinefunction(call)


def resolve_handoff(returned: Any, fallback: Any) -> Any:
    if isinstance(returned, ActionResult):
        return returned.next_value
    if returned is None:
        return fallback
    return returned
