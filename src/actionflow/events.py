"""Scoped publish/subscribe channels.

Three scopes exist and are never merged:
- process: ``GLOBAL_EVENTS``, shared by every workflow
- workflow: ``Workflow.events``, persists across runs and carries lifecycle events
- run: ``ExecutionContext.events``, created per ``start()`` and cleared when the run settles
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .context import ExecutionContext
    from .workflow import Workflow

EventHandler = Callable[..., object]


class WorkflowEventType(str, Enum):
    START = "start"
    ACTION_NEW = "action.new"
    ACTION_BEFORE = "action.before"
    ACTION_AFTER = "action.after"
    ACTION_SKIP = "action.skip"
    END = "end"
    RESET = "reset"
    RESET_ACTIONS = "reset.actions"
    RESET_STATE = "reset.state"
    RESET_ACTION_STATES = "reset.actionstates"
    RESET_LOGGERS = "reset.loggers"
    PROPERTY_CHANGED = "property.changed"
    LOGGER_NEW = "logger.new"


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    """A notification emitted by a workflow about its own progress."""

    type: WorkflowEventType
    workflow: Workflow
    context: ExecutionContext | None = None
    error: BaseException | None = None
    data: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class _Subscription:
    handler: EventHandler
    once: bool


class EventChannel:
    """Synchronous topic-based pub/sub.

    Delivery goes to the handlers registered at the moment ``emit`` is called.
    Handlers subscribed with ``once`` are removed before they are invoked.
    Exceptions raised by handlers propagate to the emitter.
    """

    def __init__(self, scope: str) -> None:
        self.scope = scope
        self._subscribers: dict[str, list[_Subscription]] = {}

    def on(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``topic`` and return an unsubscribe handle."""
        return self._add(topic, _Subscription(handler=handler, once=False))

    def once(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for the next emit of ``topic`` only."""
        return self._add(topic, _Subscription(handler=handler, once=True))

    def off(self, topic: str, handler: EventHandler | None = None) -> None:
        """Remove ``handler`` from ``topic``, or every handler when omitted."""
        key = _topic_key(topic)
        if handler is None:
            self._subscribers.pop(key, None)
            return
        current = self._subscribers.get(key)
        if not current:
            return
        remaining = [s for s in current if s.handler != handler]
        if remaining:
            self._subscribers[key] = remaining
        else:
            self._subscribers.pop(key, None)

    def emit(self, topic: str, *args: Any, **kwargs: Any) -> int:
        """Invoke every current handler of ``topic``; return how many ran."""
        key = _topic_key(topic)
        snapshot = list(self._subscribers.get(key, ()))
        if not snapshot:
            return 0

        if any(s.once for s in snapshot):
            self._discard(key, [s for s in snapshot if s.once])

        for subscription in snapshot:
            subscription.handler(*args, **kwargs)
        return len(snapshot)

    def listener_count(self, topic: str) -> int:
        return len(self._subscribers.get(_topic_key(topic), ()))

    def remove_all_listeners(self) -> None:
        self._subscribers.clear()

    def _add(self, topic: str, subscription: _Subscription) -> Callable[[], None]:
        key = _topic_key(topic)
        self._subscribers.setdefault(key, []).append(subscription)

        def _unsubscribe() -> None:
            self._discard(key, [subscription])

        return _unsubscribe

    def _discard(self, key: str, subscriptions: list[_Subscription]) -> None:
        current = self._subscribers.get(key)
        if not current:
            return
        remaining = [s for s in current if not any(s is d for d in subscriptions)]
        if remaining:
            self._subscribers[key] = remaining
        else:
            self._subscribers.pop(key, None)


def _topic_key(topic: str) -> str:
    if isinstance(topic, Enum):
        return str(topic.value)
    return topic


GLOBAL_EVENTS = EventChannel("global")
