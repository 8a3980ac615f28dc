"""Provider-facing types used by the tool loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool call extracted from a model response.

    ``arguments`` is left as the provider delivered it (dict, JSON string or None);
    the loop normalizes it before running the tool.
    """

    name: str
    arguments: Any
    call_id: Optional[str] = None


@dataclass(frozen=True)
class ToolCallResult:
    """What a tool call produced: ``{"result": ...}`` or ``{"error": ...}``."""

    name: str
    response: Dict[str, Any]
    call_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return "error" in self.response


class ToolAdapter(Protocol):
    """Glue between one model provider and :class:`ToolExecutionLoop`."""

    def get_tool_calls(self, response: Any) -> Sequence[ToolCallRequest]:
        """Tool calls requested by ``response``, in the order the model issued them."""
        ...

    def record_assistant_message(self, response: Any) -> None:
        """Append the assistant turn that requested the calls to the history."""
        ...

    def build_tool_response_message(self, result: ToolCallResult) -> Any:
        """Provider message carrying one call's result."""
        ...

    async def send_tool_responses(self, messages: Sequence[Any]) -> Any:
        """Send all result messages of a turn and return the model's next response."""
        ...
