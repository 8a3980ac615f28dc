"""Safety classification of tool calls."""

from .models import ToolSafetyClass, ToolCall
from .allowlists import SAFE_BASH_COMMANDS
from .classifier import (
    SafetyClassifier,
    classify_tool,
    classify_bash_command,
    classify_call,
)
from .patterns import PatternCache, matches_pattern

__all__ = [
    "ToolSafetyClass",
    "ToolCall",
    "SAFE_BASH_COMMANDS",
    "SafetyClassifier",
    "classify_tool",
    "classify_bash_command",
    "classify_call",
    "PatternCache",
    "matches_pattern",
]
