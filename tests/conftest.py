"""Test configuration and fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from actionflow import GLOBAL_EVENTS, PERMANENT_GLOBALS, LogMessage, Workflow, WorkflowSettings


class RecordingSink:
    """A log sink that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: list[LogMessage] = []

    def __call__(self, message: LogMessage) -> None:
        self.messages.append(message)

    @property
    def texts(self) -> list[object]:
        return [m.message for m in self.messages]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep process-wide stores and ACTIONFLOW_* settings from leaking between tests."""
    for name in ("ACTIONFLOW_LOG_LEVEL", "ACTIONFLOW_PYTHON_LOG_LEVEL", "ACTIONFLOW_FORWARD_TO_LOGGING"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    PERMANENT_GLOBALS.clear()
    GLOBAL_EVENTS.remove_all_listeners()
    yield
    PERMANENT_GLOBALS.clear()
    GLOBAL_EVENTS.remove_all_listeners()


@pytest.fixture
def settings() -> WorkflowSettings:
    """Provide settings that ignore the environment."""
    return WorkflowSettings(_env_file=None)


@pytest.fixture
def workflow(settings: WorkflowSettings) -> Workflow:
    """Provide an empty workflow."""
    return Workflow(settings=settings)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
