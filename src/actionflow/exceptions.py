"""Exception types raised by the workflow engine."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for workflow engine failures."""


class IndexOutOfRangeError(WorkflowError, IndexError):
    """Raised when an action asks the instruction pointer to leave the workflow."""

    def __init__(self, index: int, count: int) -> None:
        self.index = index
        self.count = count
        super().__init__(f"Index out of range: {index} (workflow has {count} actions)")
