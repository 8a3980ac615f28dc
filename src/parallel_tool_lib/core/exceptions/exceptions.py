"""
Custom exception classes for the parallel tool engine.

Classification and scheduling never raise for tools of unknown safety; those
are simply run serially. The exceptions here cover caller contract violations
and the errors the tool loop reports back to the model.
"""


class ParallelToolError(Exception):
    """Base exception for all errors raised by this library."""

    pass


class InvalidToolCallError(ParallelToolError):
    """Raised when a submitted tool call is not a ``(name, input)`` pair."""

    pass


class ToolNotFoundError(ParallelToolError):
    """Raised when a requested tool is not known to the tool loop."""

    pass


class ToolExecutionError(ParallelToolError):
    """Raised when a tool fails during execution or its arguments cannot be parsed."""

    pass
