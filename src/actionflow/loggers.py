"""Fan-out of workflow log messages to registered sinks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from .logging import LogLevel

if TYPE_CHECKING:
    from .context import ExecutionContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LogMessage:
    level: LogLevel
    message: Any
    tag: str | None = None
    context: ExecutionContext | None = None
    receiver: Any = None
    time: datetime = field(default_factory=lambda: datetime.now(UTC))


class LogSink(Protocol):
    """Receives every log message that passes the workflow's level gate."""

    def __call__(self, message: LogMessage) -> object: ...


@dataclass(frozen=True, slots=True)
class LoggerEntry:
    sink: LogSink
    receiver: Any = None


class LoggerMultiplexer:
    """Ordered list of sinks sharing a minimum severity gate.

    A sink that raises is reported through the stdlib logger of this module;
    the remaining sinks are still invoked.
    """

    def __init__(self) -> None:
        self._entries: list[LoggerEntry] = []

    @property
    def entries(self) -> tuple[LoggerEntry, ...]:
        return tuple(self._entries)

    def add(self, sink: LogSink, receiver: Any = None) -> LoggerEntry:
        entry = LoggerEntry(sink=sink, receiver=receiver)
        self._entries.append(entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def dispatch(
        self,
        level: LogLevel,
        message: Any,
        *,
        min_level: LogLevel,
        tag: str | None = None,
        context: ExecutionContext | None = None,
    ) -> int:
        """Send a message to every sink if ``level`` passes ``min_level``.

        Returns:
            Number of sinks that accepted the message without raising.
        """
        if level > min_level:
            return 0

        delivered = 0
        time = datetime.now(UTC)
        for entry in list(self._entries):
            record = LogMessage(
                level=level,
                message=message,
                tag=tag,
                context=context,
                receiver=entry.receiver,
                time=time,
            )
            try:
                entry.sink(record)
            except Exception:
                logger.exception(
                    "Log sink %r failed for %s message", entry.sink, level.name
                )
                continue
            delivered += 1
        return delivered

    def __len__(self) -> int:
        return len(self._entries)
