"""Batch planning, parallel execution and the tool loop built on them."""

from .planner import ConcurrentGroup, SerialGroup, ExecutionGroup, plan_groups
from .executor import ParallelExecutor, IndexedResult
from .call_protocol import ToolAdapter, ToolCallRequest, ToolCallResult
from .tool_loop import ToolExecutionLoop

__all__ = [
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
