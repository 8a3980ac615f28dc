"""Export the exception hierarchy used across classification and execution paths."""

from .exceptions import ParallelToolError, InvalidToolCallError, ToolNotFoundError, ToolExecutionError

__all__ = ["ParallelToolError", "InvalidToolCallError", "ToolNotFoundError", "ToolExecutionError"]
