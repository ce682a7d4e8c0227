"""The workflow registry and its run loop."""

from __future__ import annotations

import inspect
import logging
from datetime import UTC, datetime
from typing import Any

from .actions import ActionEntry, ActionLike, resolve_handoff
from .config import WorkflowSettings
from .context import ExecutionContext, RunState, SkipPredicate
from .events import EventChannel, LifecycleEvent, WorkflowEventType
from .loggers import LoggerMultiplexer, LogSink
from .logging import LogLevel, StdlibLogSink
from .storage import ActionStates

logger = logging.getLogger(__name__)

_DEFAULT_RECEIVER: Any = object()


class Workflow:
    """An ordered list of actions executed one at a time.

    Actions are appended with ``then``/``next`` and run by awaiting
    ``start()``. Each run owns its own pointer, ephemeral per-action state,
    globals and run-scoped event channel. Durable per-action state, the
    workflow ``state`` and ``PERMANENT_GLOBALS`` are shared by every run,
    including runs started concurrently; nothing synchronises access to them.
    """

    def __init__(self, settings: WorkflowSettings | None = None) -> None:
        """Initialize the workflow.

        Args:
            settings: Defaults for the log level and stdlib forwarding. If
                None, loads from the environment.
        """
        self.settings = settings or WorkflowSettings()

        self._actions: list[ActionEntry] = []
        self._action_states = ActionStates()
        self._executions = 0
        self._state: Any = None
        self._log_level = self.settings.log_level
        self._loggers = LoggerMultiplexer()
        self.events = EventChannel("workflow")

        if self.settings.forward_to_logging:
            self.add_logger(StdlibLogSink())

    # registry

    @property
    def count(self) -> int:
        return len(self._actions)

    @property
    def executions(self) -> int:
        """Number of times ``start()`` has been called since the last reset."""
        return self._executions

    @property
    def action_states(self) -> ActionStates:
        return self._action_states

    def then(self, action: ActionLike = None, receiver: Any = _DEFAULT_RECEIVER) -> Workflow:
        """Append an action.

        Args:
            action: A callable taking the execution context, an ``async def``
                callable, an object with an ``execute(ctx)`` method, or None
                for a step that does nothing.
            receiver: Value exposed as ``ctx.receiver`` while the action runs.
                Defaults to this workflow.

        Returns:
            This workflow, for chaining.
        """
        if receiver is _DEFAULT_RECEIVER:
            receiver = self

        entry = ActionEntry.from_executor(action, receiver)
        self._actions.append(entry)
        self._emit(
            WorkflowEventType.ACTION_NEW,
            data={"entry": entry, "index": len(self._actions) - 1},
        )
        return self

    def next(self, action: ActionLike = None, receiver: Any = _DEFAULT_RECEIVER) -> Workflow:
        """Alias for ``then``."""
        return self.then(action, receiver)

    def reset(self) -> Workflow:
        """Remove actions, durable states, loggers and the run counter.

        ``PERMANENT_GLOBALS`` is left untouched.
        """
        self._actions.clear()
        self._emit(WorkflowEventType.RESET_ACTIONS)

        self.reset_action_states()
        self.reset_state()
        self.reset_loggers()

        self._executions = 0
        self._emit(WorkflowEventType.RESET)
        return self

    def reset_action_states(self) -> Workflow:
        self._action_states.clear()
        self._emit(WorkflowEventType.RESET_ACTION_STATES)
        return self

    def reset_state(self) -> Workflow:
        self.state = None
        self._emit(WorkflowEventType.RESET_STATE)
        return self

    def reset_loggers(self) -> Workflow:
        self._loggers.clear()
        self._emit(WorkflowEventType.RESET_LOGGERS)
        return self

    # workflow state

    @property
    def state(self) -> Any:
        return self._state

    @state.setter
    def state(self, new_value: Any) -> None:
        old_value = self._state
        self._state = new_value
        if old_value is not new_value and old_value != new_value:
            self._emit(
                WorkflowEventType.PROPERTY_CHANGED,
                data={"property": "state", "old": old_value, "new": new_value},
            )

    def set_state(self, new_value: Any) -> Workflow:
        self.state = new_value
        return self

    # logging

    @property
    def log_level(self) -> LogLevel:
        return self._log_level

    @log_level.setter
    def log_level(self, new_value: LogLevel | int | str) -> None:
        self._log_level = LogLevel.parse(new_value)

    @property
    def loggers(self) -> LoggerMultiplexer:
        return self._loggers

    def add_logger(self, sink: LogSink, receiver: Any = _DEFAULT_RECEIVER) -> Workflow:
        if receiver is _DEFAULT_RECEIVER:
            receiver = self

        entry = self._loggers.add(sink, receiver)
        self._emit(WorkflowEventType.LOGGER_NEW, data={"entry": entry})
        return self

    def log(
        self,
        level: LogLevel | int | str,
        message: Any,
        tag: str | None = None,
        context: ExecutionContext | None = None,
    ) -> Workflow:
        """Send ``message`` to every logger if ``level`` passes ``log_level``."""
        self._loggers.dispatch(
            LogLevel.parse(level),
            message,
            min_level=self._log_level,
            tag=tag,
            context=context,
        )
        return self

    # execution

    async def start(self, initial_value: Any = None) -> Any:
        """Run every action in order, following pointer redirections.

        Args:
            initial_value: Starting value of ``ctx.value``.

        Returns:
            The last value assigned to ``ctx.result`` (None if never set).

        Raises:
            IndexOutOfRangeError: If an action jumps outside the workflow.
            Exception: Whatever an action raised, unchanged.
        """
        self._executions += 1
        run = RunState(
            entries=tuple(self._actions),
            workflow_executions=self._executions,
            value=initial_value,
        )

        logger.debug(
            "Starting workflow run #%d with %d actions", run.workflow_executions, run.count
        )
        try:
            self._emit(
                WorkflowEventType.START,
                data={"initial_value": initial_value, "execution": run.workflow_executions},
            )
            self.log(LogLevel.DEBUG, f"Run #{run.workflow_executions} started", tag="start")

            while True:
                run.pointer += 1
                if run.pointer >= run.count:
                    break

                run.executions += 1
                ctx = ExecutionContext(self, run)

                predicate = run.skip_predicate
                if predicate is not None:
                    if await _evaluate_skip(predicate, ctx):
                        self._emit(WorkflowEventType.ACTION_SKIP, ctx)
                        self.log(
                            LogLevel.TRACE,
                            f"Skipped action #{ctx.index}",
                            tag="action.skip",
                            context=ctx,
                        )
                        continue
                    if run.skip_predicate is predicate:
                        run.skip_predicate = None

                await self._execute(run, ctx)

            self._emit(
                WorkflowEventType.END,
                data={"result": run.result, "executions": run.executions},
            )
            self.log(LogLevel.DEBUG, f"Run #{run.workflow_executions} finished", tag="end")
            logger.debug(
                "Workflow run #%d finished after %d steps",
                run.workflow_executions,
                run.executions,
            )
            return run.result
        finally:
            run.events.remove_all_listeners()

    async def _execute(self, run: RunState, ctx: ExecutionContext) -> None:
        entry = ctx.entry

        self._emit(WorkflowEventType.ACTION_BEFORE, ctx)
        self.log(LogLevel.TRACE, f"Executing action #{ctx.index}", tag="action.before", context=ctx)
        try:
            if entry.action is None:
                returned = None
            elif entry.is_async:
                returned = await entry.action(ctx)
            else:
                returned = entry.action(ctx)
                # plain wrappers around coroutine functions
                if inspect.isawaitable(returned):
                    returned = await returned
        except Exception as exc:
            logger.debug("Action #%d failed: %r", ctx.index, exc)
            self._emit(WorkflowEventType.ACTION_AFTER, ctx, error=exc)
            self.log(
                LogLevel.ERROR,
                f"Action #{ctx.index} failed: {exc!r}",
                tag="action.error",
                context=ctx,
            )
            raise

        run.previous_value = resolve_handoff(returned, ctx.next_value)
        run.previous_index = ctx.index
        run.result = ctx.result
        run.value = ctx.value
        run.previous_start_time = ctx.time
        run.previous_end_time = datetime.now(UTC)

        self._emit(WorkflowEventType.ACTION_AFTER, ctx)

    def _emit(
        self,
        event_type: WorkflowEventType,
        context: ExecutionContext | None = None,
        *,
        error: BaseException | None = None,
        data: dict[str, object] | None = None,
    ) -> None:
        self.events.emit(
            event_type,
            LifecycleEvent(
                type=event_type,
                workflow=self,
                context=context,
                error=error,
                data=data or {},
            ),
        )

    def __repr__(self) -> str:
        return f"Workflow(count={self.count}, executions={self._executions})"


async def _evaluate_skip(predicate: SkipPredicate, ctx: ExecutionContext) -> bool:
    outcome = predicate(ctx)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return bool(outcome)


def create(*executors: ActionLike, settings: WorkflowSettings | None = None) -> Workflow:
    """Create a workflow with ``executors`` already appended."""
    workflow = Workflow(settings=settings)
    for executor in executors:
        workflow.then(executor)
    return workflow


async def start(*executors: ActionLike, initial_value: Any = None) -> Any:
    """Build a throwaway workflow from ``executors`` and run it."""
    return await create(*executors).start(initial_value)
