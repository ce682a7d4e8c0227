"""actionflow.

Sequential workflows of sync and async actions with:
- an instruction pointer that actions can redirect (goto, repeat, skip, finish)
- run, action, workflow and process scoped value stores
- scoped event channels and leveled log sinks
"""

__version__ = "0.1.0"

from actionflow.actions import ActionEntry, ActionExecutor, ActionResult
from actionflow.config import WorkflowSettings
from actionflow.context import ExecutionContext
from actionflow.events import GLOBAL_EVENTS, EventChannel, LifecycleEvent, WorkflowEventType
from actionflow.exceptions import IndexOutOfRangeError, WorkflowError
from actionflow.loggers import LogMessage
from actionflow.logging import LogLevel, StdlibLogSink, configure_logging
from actionflow.storage import PERMANENT_GLOBALS
from actionflow.workflow import Workflow, create, start

__all__ = [
    "__version__",
    "ActionEntry",
    "ActionExecutor",
    "ActionResult",
    "EventChannel",
    "ExecutionContext",
    "GLOBAL_EVENTS",
    "IndexOutOfRangeError",
    "LifecycleEvent",
    "LogLevel",
    "LogMessage",
    "PERMANENT_GLOBALS",
    "StdlibLogSink",
    "Workflow",
    "WorkflowError",
    "WorkflowEventType",
    "WorkflowSettings",
    "configure_logging",
    "create",
    "start",
]
