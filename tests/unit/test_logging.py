"""Unit tests for workflow log levels, sinks and stdlib integration."""

from __future__ import annotations

import io
import json
import logging
from typing import Any

import pytest

from actionflow import ExecutionContext, LogLevel, LogMessage, StdlibLogSink, Workflow
from actionflow.loggers import LoggerMultiplexer
from actionflow.logging import JsonFormatter, configure_logging, to_stdlib_level


def test_levels_are_ordered_most_severe_first() -> None:
    assert [level.value for level in LogLevel] == list(range(9))
    assert LogLevel.EMERGENCY < LogLevel.NOTICE < LogLevel.TRACE


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (LogLevel.DEBUG, LogLevel.DEBUG),
        (3, LogLevel.ERROR),
        ("warning", LogLevel.WARNING),
        (" Notice ", LogLevel.NOTICE),
        ("8", LogLevel.TRACE),
    ],
)
def test_parse_log_level(raw: Any, expected: LogLevel) -> None:
    assert LogLevel.parse(raw) is expected


@pytest.mark.parametrize("raw", [9, -1, "verbose", None])
def test_parse_log_level_rejects_unknown_values(raw: Any) -> None:
    with pytest.raises(ValueError):
        LogLevel.parse(raw)


def test_default_threshold_is_notice(workflow: Workflow, sink: Any) -> None:
    workflow.add_logger(sink)

    for level in LogLevel:
        workflow.log(level, level.name)

    assert workflow.log_level is LogLevel.NOTICE
    assert sink.texts == ["EMERGENCY", "ALERT", "CRITICAL", "ERROR", "WARNING", "NOTICE"]


def test_threshold_can_be_changed(workflow: Workflow, sink: Any) -> None:
    workflow.add_logger(sink)
    workflow.log_level = "error"

    workflow.log(LogLevel.WARNING, "dropped")
    workflow.log("error", "kept", tag="db")

    assert sink.texts == ["kept"]
    assert sink.messages[0].tag == "db"
    assert sink.messages[0].level is LogLevel.ERROR


def test_sink_receiver_defaults_to_workflow(workflow: Workflow, sink: Any) -> None:
    owner = object()
    other: list[LogMessage] = []
    workflow.add_logger(sink).add_logger(other.append, owner)

    workflow.log(LogLevel.ALERT, "hello")

    assert sink.messages[0].receiver is workflow
    assert other[0].receiver is owner


@pytest.mark.asyncio
async def test_context_helpers_use_their_severity(workflow: Workflow, sink: Any) -> None:
    workflow.add_logger(sink)
    workflow.log_level = LogLevel.TRACE

    def talk(ctx: ExecutionContext) -> None:
        ctx.emergency("m0").alert("m1").critical("m2").error("m3").warning("m4")
        ctx.notice("m5").info("m6").debug("m7").trace("m8", tag="t")
        ctx.log(LogLevel.INFO, "generic")

    workflow.then(talk)
    await workflow.start()

    own = [m for m in sink.messages if m.context is not None and m.message in {f"m{i}" for i in range(9)}]
    assert [m.level for m in own] == list(LogLevel)
    assert own[-1].tag == "t"
    assert own[0].context.index == 0
    assert "generic" in sink.texts


@pytest.mark.asyncio
async def test_failing_sink_does_not_stop_other_sinks_or_the_run(
    workflow: Workflow, sink: Any, caplog: pytest.LogCaptureFixture
) -> None:
    def broken(message: LogMessage) -> None:
        raise OSError("disk full")

    workflow.add_logger(broken).add_logger(sink)

    def talk(ctx: ExecutionContext) -> None:
        ctx.warning("first")
        ctx.result = "done"

    workflow.then(talk).then(lambda ctx: ctx.error("second"))

    with caplog.at_level(logging.ERROR, logger="actionflow.loggers"):
        assert await workflow.start() == "done"

    assert sink.texts == ["first", "second"]
    failures = [r for r in caplog.records if r.name == "actionflow.loggers"]
    assert len(failures) == 2
    assert all(r.exc_info is not None for r in failures)


def test_multiplexer_reports_delivered_count() -> None:
    received: list[LogMessage] = []

    def broken(message: LogMessage) -> None:
        raise RuntimeError("nope")

    multiplexer = LoggerMultiplexer()
    multiplexer.add(broken)
    multiplexer.add(received.append)

    assert multiplexer.dispatch(LogLevel.ERROR, "x", min_level=LogLevel.NOTICE) == 1
    assert multiplexer.dispatch(LogLevel.DEBUG, "y", min_level=LogLevel.NOTICE) == 0
    assert [m.message for m in received] == ["x"]


@pytest.mark.asyncio
async def test_failed_action_is_logged_as_error(workflow: Workflow, sink: Any) -> None:
    workflow.add_logger(sink)

    def fail(ctx: ExecutionContext) -> None:
        raise RuntimeError("boom")

    workflow.then(fail)
    with pytest.raises(RuntimeError):
        await workflow.start()

    errors = [m for m in sink.messages if m.level is LogLevel.ERROR]
    assert len(errors) == 1
    assert errors[0].tag == "action.error"
    assert "boom" in str(errors[0].message)


@pytest.mark.asyncio
async def test_engine_progress_is_logged_at_debug_and_trace(workflow: Workflow, sink: Any) -> None:
    workflow.add_logger(sink)
    workflow.log_level = LogLevel.TRACE
    workflow.then(lambda ctx: ctx.skip()).then(lambda ctx: None)

    await workflow.start()

    assert [m.tag for m in sink.messages] == ["start", "action.before", "action.skip", "end"]


def test_stdlib_sink_maps_levels(caplog: pytest.LogCaptureFixture, workflow: Workflow) -> None:
    workflow.add_logger(StdlibLogSink())
    workflow.log_level = LogLevel.TRACE

    with caplog.at_level(logging.DEBUG, logger="actionflow.messages"):
        workflow.log(LogLevel.ALERT, "alert", tag="ops")
        workflow.log(LogLevel.NOTICE, "notice")
        workflow.log(LogLevel.TRACE, "trace")

    records = [r for r in caplog.records if r.name == "actionflow.messages"]
    assert [(r.levelno, r.getMessage()) for r in records] == [
        (logging.CRITICAL, "alert"),
        (logging.INFO, "notice"),
        (logging.DEBUG, "trace"),
    ]
    assert records[0].tag == "ops"
    assert records[0].workflow_level == "ALERT"


def test_to_stdlib_level() -> None:
    assert to_stdlib_level(LogLevel.EMERGENCY) == logging.CRITICAL
    assert to_stdlib_level(LogLevel.WARNING) == logging.WARNING
    assert to_stdlib_level(LogLevel.INFO) == logging.INFO


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="actionflow.workflow",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    record.tag = "greeting"
    record.request_id = "r-1"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "actionflow.workflow"
    assert payload["tag"] == "greeting"
    assert payload["extra"] == {"request_id": "r-1"}


@pytest.mark.asyncio
async def test_forwarded_messages_render_workflow_fields(settings: Any) -> None:
    stream = io.StringIO()
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging("notice", stream=stream)

        workflow = Workflow(settings=settings).add_logger(StdlibLogSink())
        workflow.then(None).then(lambda ctx: ctx.warning("disk almost full", tag="disk"))
        await workflow.start()
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    forwarded = [line for line in lines if line["logger"] == "actionflow.messages"]
    assert forwarded == [
        {
            "timestamp": forwarded[0]["timestamp"],
            "level": "WARNING",
            "logger": "actionflow.messages",
            "message": "disk almost full",
            "workflow_level": "WARNING",
            "tag": "disk",
            "action_index": 1,
        }
    ]


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("INFO", logging.INFO),
        ("warning", logging.WARNING),
        ("notice", logging.INFO),
        ("trace", logging.DEBUG),
        (LogLevel.ALERT, logging.CRITICAL),
    ],
)
def test_configure_logging_accepts_workflow_levels(level: Any, expected: int) -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging(level, stream=io.StringIO())
        assert root.level == expected
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)
