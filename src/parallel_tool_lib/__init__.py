"""Parallel Tool Library - safe concurrent execution of LLM tool calls."""

from .core import (
    ParallelConfig,
    ParallelToolError,
    InvalidToolCallError,
    ToolNotFoundError,
    ToolExecutionError,
    get_logger,
    setup_logging,
)
from .classification import (
    ToolSafetyClass,
    ToolCall,
    SafetyClassifier,
    classify_tool,
    classify_bash_command,
    classify_call,
    PatternCache,
    matches_pattern,
)
from .execution import (
    ConcurrentGroup,
    SerialGroup,
    ExecutionGroup,
    plan_groups,
    ParallelExecutor,
    IndexedResult,
    ToolAdapter,
    ToolCallRequest,
    ToolCallResult,
    ToolExecutionLoop,
)

__all__ = [
    "ParallelConfig",
    "ParallelToolError",
    "InvalidToolCallError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "get_logger",
    "setup_logging",
    "ToolSafetyClass",
    "ToolCall",
    "SafetyClassifier",
    "classify_tool",
    "classify_bash_command",
    "classify_call",
    "PatternCache",
    "matches_pattern",
    "ConcurrentGroup",
    "SerialGroup",
    "ExecutionGroup",
    "plan_groups",
    "ParallelExecutor",
    "IndexedResult",
    "ToolAdapter",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolExecutionLoop",
]
