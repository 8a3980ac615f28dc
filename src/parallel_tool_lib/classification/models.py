"""Data types shared by the classifier, the planner and the executor."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, NamedTuple


class ToolSafetyClass(str, Enum):
    """Whether a tool call is known to be free of side effects.

    ``UNKNOWN`` is scheduled exactly like ``MUTATING``; the separate value only
    tells logs and reports that safety could not be proven.
    """

    READ_ONLY = "read_only"
    MUTATING = "mutating"
    UNKNOWN = "unknown"

    @property
    def is_parallelizable(self) -> bool:
        """Only read-only calls may overlap with other calls."""
        return self is ToolSafetyClass.READ_ONLY


class ToolCall(NamedTuple):
    """One agent-requested action: a tool name and its structured input."""

    name: str
    input: Mapping[str, Any]
