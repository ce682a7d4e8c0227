"""Per-run state and the per-step execution context handed to actions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeAlias

from .actions import ActionEntry
from .events import GLOBAL_EVENTS, EventChannel
from .exceptions import IndexOutOfRangeError
from .logging import LogLevel
from .storage import PERMANENT_GLOBALS, ActionStates, ValueStorage

if TYPE_CHECKING:
    from .workflow import Workflow

SkipPredicate: TypeAlias = "Callable[[ExecutionContext], bool | Awaitable[bool]]"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class RunState:
    """Everything owned by a single ``Workflow.start()`` invocation."""

    entries: tuple[ActionEntry, ...]
    workflow_executions: int
    value: Any = None
    pointer: int = -1
    executions: int = 0
    action_states: ActionStates = field(default_factory=ActionStates)
    globals: ValueStorage = field(default_factory=dict)
    previous_value: Any = None
    previous_index: int | None = None
    result: Any = None
    start_time: datetime = field(default_factory=_now)
    previous_start_time: datetime | None = None
    previous_end_time: datetime | None = None
    skip_predicate: SkipPredicate | None = None
    events: EventChannel = field(default_factory=lambda: EventChannel("run"))

    @property
    def count(self) -> int:
        return len(self.entries)

    def jump(self, pointer: int) -> None:
        """Move the instruction pointer; the next step runs ``pointer + 1``."""
        if not -1 <= pointer <= self.count - 1:
            raise IndexOutOfRangeError(pointer + 1, self.count)
        self.pointer = pointer


class ExecutionContext:
    """The view of one step that an action receives.

    Pointer operations only affect which action runs next; when several are
    called during one step the last one wins. ``state`` and
    ``permanent_state`` are always addressed by this step's ``index``, even
    after the pointer has been moved.
    """

    def __init__(self, workflow: Workflow, run: RunState) -> None:
        self._workflow = workflow
        self._run = run
        self._index = run.pointer
        self._executions = run.executions
        self._time = _now()

        self.value: Any = run.value
        self.result: Any = run.result
        self.next_value: Any = None

    # step metadata

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    @property
    def entry(self) -> ActionEntry:
        return self._run.entries[self._index]

    @property
    def receiver(self) -> Any:
        return self.entry.receiver

    @property
    def index(self) -> int:
        return self._index

    @property
    def count(self) -> int:
        return self._run.count

    @property
    def executions(self) -> int:
        """Number of steps (including skipped ones) selected so far in this run."""
        return self._executions

    @property
    def workflow_executions(self) -> int:
        return self._run.workflow_executions

    @property
    def is_first(self) -> bool:
        return self._index == 0

    @property
    def is_last(self) -> bool:
        return self._index == self.count - 1

    @property
    def is_between(self) -> bool:
        return 0 < self._index < self.count - 1

    @property
    def previous_index(self) -> int | None:
        return self._run.previous_index

    @property
    def previous_value(self) -> Any:
        return self._run.previous_value

    @property
    def current(self) -> ExecutionContext:
        return self

    # timing

    @property
    def time(self) -> datetime:
        return self._time

    @property
    def start_time(self) -> datetime:
        return self._run.start_time

    @property
    def previous_start_time(self) -> datetime | None:
        return self._run.previous_start_time

    @property
    def previous_end_time(self) -> datetime | None:
        return self._run.previous_end_time

    # value stores

    @property
    def state(self) -> Any:
        return self._run.action_states.get(self._index)

    @state.setter
    def state(self, new_value: Any) -> None:
        self._run.action_states.set(self._index, new_value)

    @property
    def permanent_state(self) -> Any:
        return self._workflow.action_states.get(self._index)

    @permanent_state.setter
    def permanent_state(self, new_value: Any) -> None:
        self._workflow.action_states.set(self._index, new_value)

    @property
    def workflow_state(self) -> Any:
        return self._workflow.state

    @workflow_state.setter
    def workflow_state(self, new_value: Any) -> None:
        self._workflow.state = new_value

    @property
    def globals(self) -> ValueStorage:
        return self._run.globals

    @property
    def permanent_globals(self) -> ValueStorage:
        return PERMANENT_GLOBALS

    # events

    @property
    def events(self) -> EventChannel:
        return self._run.events

    @property
    def workflow_events(self) -> EventChannel:
        return self._workflow.events

    @property
    def global_events(self) -> EventChannel:
        return GLOBAL_EVENTS

    # instruction pointer

    def goto(self, index: int) -> ExecutionContext:
        """Run the action at zero-based ``index`` next."""
        if not 0 <= index < self.count:
            raise IndexOutOfRangeError(index, self.count)
        return self._jump(index - 1)

    def goto_first(self) -> ExecutionContext:
        return self._jump(-1)

    def goto_last(self) -> ExecutionContext:
        return self._jump(self.count - 2)

    def goto_next(self) -> ExecutionContext:
        return self._jump(self._index)

    def go_back(self, count: int = 1) -> ExecutionContext:
        return self.goto(self._index - count)

    def repeat(self) -> ExecutionContext:
        return self.goto(self._index)

    def finish(self) -> ExecutionContext:
        """End the run once the current action has completed."""
        return self._jump(self.count - 1)

    def skip(self, count: int = 1) -> ExecutionContext:
        """Bypass the next ``count`` steps without invoking them.

        Like the ``goto`` family this replaces any jump made earlier in the
        same step: counting starts at the step right after this one.
        """
        self._run.pointer = self._index
        remaining = count

        def _skip_counter(_ctx: ExecutionContext) -> bool:
            nonlocal remaining
            if remaining > 0:
                remaining -= 1
                return True
            return False

        self._run.skip_predicate = _skip_counter
        return self

    @property
    def skip_predicate(self) -> SkipPredicate | None:
        return self._run.skip_predicate

    @skip_predicate.setter
    def skip_predicate(self, predicate: SkipPredicate | None) -> None:
        self._run.skip_predicate = predicate

    def _jump(self, pointer: int) -> ExecutionContext:
        self._run.jump(pointer)
        self._run.skip_predicate = None
        return self

    # logging

    def log(
        self, level: LogLevel | int | str, message: Any, tag: str | None = None
    ) -> ExecutionContext:
        self._workflow.log(level, message, tag=tag, context=self)
        return self

    def emergency(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.EMERGENCY, message, tag)

    def alert(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.ALERT, message, tag)

    def critical(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.CRITICAL, message, tag)

    def error(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.ERROR, message, tag)

    def warning(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.WARNING, message, tag)

    def notice(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.NOTICE, message, tag)

    def info(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.INFO, message, tag)

    def debug(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.DEBUG, message, tag)

    def trace(self, message: Any, tag: str | None = None) -> ExecutionContext:
        return self.log(LogLevel.TRACE, message, tag)

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(index={self._index}, count={self.count}, "
            f"executions={self._executions})"
        )
