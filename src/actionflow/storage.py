"""Value stores shared by workflow runs.

Three tiers exist:
- ``PERMANENT_GLOBALS``: one dict for the whole process, never cleared by the engine
- run globals: a fresh dict per ``Workflow.start()`` call
- ``ActionStates``: per-action values addressed by action index
"""

from __future__ import annotations

from typing import Any, TypeAlias

ValueStorage: TypeAlias = dict[str, Any]

PERMANENT_GLOBALS: ValueStorage = {}


class ActionStates:
    """Index-addressed state slots, one per action position.

    Unset positions read as ``None``.
    """

    def __init__(self) -> None:
        self._values: dict[int, Any] = {}

    def get(self, index: int) -> Any:
        return self._values.get(index)

    def set(self, index: int, value: Any) -> None:
        self._values[index] = value

    def clear(self) -> None:
        self._values.clear()

    def __contains__(self, index: object) -> bool:
        return index in self._values

    def __len__(self) -> int:
        return len(self._values)
