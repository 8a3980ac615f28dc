"""Shared infrastructure: configuration, logging and exceptions."""

from .config import ParallelConfig
from .exceptions import (
    ParallelToolError,
    InvalidToolCallError,
    ToolNotFoundError,
    ToolExecutionError,
)
from .logger import get_logger, setup_logging

__all__ = [
    "ParallelConfig",
    "ParallelToolError",
    "InvalidToolCallError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "get_logger",
    "setup_logging",
]
