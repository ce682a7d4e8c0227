"""Log levels and stdlib logging integration.

Workflow log messages use the syslog-style ``LogLevel`` scale. The engine's
own diagnostics use standard library logging with a JSON formatter.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from enum import IntEnum
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from .loggers import LogMessage

_RESERVED_LOG_RECORD_ATTRS: set[str] = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


class LogLevel(IntEnum):
    """Severity of a workflow log message, most severe first."""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7
    TRACE = 8

    @classmethod
    def parse(cls, value: LogLevel | int | str) -> LogLevel:
        """Accept a member, its number, or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        if isinstance(value, str):
            name = value.strip()
            if name.isdigit():
                return cls.parse(int(name))
            try:
                return cls[name.upper()]
            except KeyError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        raise ValueError(f"Unknown log level: {value!r}")


_STDLIB_LEVELS: dict[LogLevel, int] = {
    LogLevel.EMERGENCY: logging.CRITICAL,
    LogLevel.ALERT: logging.CRITICAL,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.NOTICE: logging.INFO,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: logging.DEBUG,
}


def to_stdlib_level(level: LogLevel) -> int:
    return _STDLIB_LEVELS[level]


# Attached by StdlibLogSink; rendered as top-level keys instead of "extra".
_WORKFLOW_FIELDS: tuple[str, ...] = ("workflow_level", "tag", "action_index")


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Workflow messages forwarded by ``StdlibLogSink`` carry ``workflow_level``,
    ``tag`` and ``action_index``; those become top-level keys so they can be
    filtered on directly. Any other ``extra`` values are grouped under
    ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_LOG_RECORD_ATTRS or key.startswith("_"):
                continue
            if key in _WORKFLOW_FIELDS:
                payload[key] = value
            else:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # workflow messages may be arbitrary objects
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | LogLevel, *, stream: TextIO | None = None) -> None:
    """Send every record to ``stream`` (stdout by default) as JSON lines.

    ``level`` is either a stdlib level name such as ``"INFO"`` or a workflow
    level (a ``LogLevel`` or a name like ``"notice"``), which is mapped onto
    its stdlib counterpart. Handlers already on the root logger are replaced.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(_root_level(level))


def _root_level(level: str | LogLevel) -> int:
    if isinstance(level, str):
        stdlib_level = logging.getLevelName(level.strip().upper())
        if isinstance(stdlib_level, int):
            return stdlib_level
    return to_stdlib_level(LogLevel.parse(level))


class StdlibLogSink:
    """Forward workflow log messages to a standard library logger."""

    def __init__(self, logger_name: str = "actionflow.messages") -> None:
        self.logger = logging.getLogger(logger_name)

    def __call__(self, message: LogMessage) -> None:
        extra: dict[str, object] = {"workflow_level": message.level.name}
        if message.tag is not None:
            extra["tag"] = message.tag
        if message.context is not None:
            extra["action_index"] = message.context.index
        self.logger.log(to_stdlib_level(message.level), "%s", message.message, extra=extra)
