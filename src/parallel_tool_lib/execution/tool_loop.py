"""Provider-agnostic tool loop that runs each turn's calls through the parallel executor."""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError

from ..classification.models import ToolCall
from ..core.exceptions import ToolExecutionError, ToolNotFoundError
from ..core.logger import get_logger
from .call_protocol import ToolAdapter, ToolCallRequest, ToolCallResult
from .executor import ParallelExecutor

logger = get_logger(__name__)


class ToolExecutionLoop:
    """Agent loop between a model provider and a set of local tools.

    Every turn, all tool calls of the model response are handed to a
    :class:`ParallelExecutor`, so read-only calls overlap while anything else
    runs alone. Results go back to the model in the order it issued the calls.
    """

    # Exceptions that are reported back to the model as an error result.
    # Anything else (ConnectionError, MemoryError, ...) propagates once the
    # whole batch has finished, stopping the loop.
    RECOVERABLE_ERRORS = (
        ToolExecutionError,
        ToolNotFoundError,
        FileNotFoundError,
        FileExistsError,
        PermissionError,
        IsADirectoryError,
        NotADirectoryError,
        ValueError,
        TypeError,
    )

    def __init__(
        self,
        *,
        tools: Mapping[str, Callable[..., Any]],
        max_function_loops: int,
        tool_timeout: float = 180.0,
        executor: Optional[ParallelExecutor] = None,
        argument_models: Optional[Mapping[str, Type[BaseModel]]] = None,
        argument_error_formatter: Optional[Callable[[str, Exception], str]] = None,
    ) -> None:
        """Initialize the tool loop.

        Args:
            tools: Tool implementations by name. Sync callables run in a worker thread.
            max_function_loops: Maximum number of tool-call rounds.
            tool_timeout: Timeout in seconds for a single tool call.
            executor: Batch executor. Defaults to ``ParallelExecutor()``.
            argument_models: Optional pydantic models validating each tool's arguments.
            argument_error_formatter: Optional formatter for argument parsing errors.
        """
        self._tools = dict(tools)
        self._max_function_loops = max_function_loops
        self._tool_timeout = tool_timeout
        self._executor = executor or ParallelExecutor()
        self._argument_models = dict(argument_models or {})
        self._argument_error_formatter = argument_error_formatter or self._default_argument_error

    async def run(self, *, initial_response: Any, adapter: ToolAdapter) -> Any:
        """Run tool rounds until the model stops asking for tools.

        Args:
            initial_response: First provider response to inspect.
            adapter: Provider-specific adapter.

        Returns:
            The last provider response.
        """
        current_response = initial_response

        for loop_index in range(self._max_function_loops):
            tool_calls = list(adapter.get_tool_calls(current_response))

            if not tool_calls:
                logger.debug("No tool calls found in response. Loop finished.")
                adapter.record_assistant_message(current_response)
                return current_response

            logger.info(
                "Loop %d/%d: Processing %d tool call(s).", loop_index + 1, self._max_function_loops, len(tool_calls)
            )
            adapter.record_assistant_message(current_response)

            results = await self.execute_tool_calls(tool_calls)
            response_messages = [adapter.build_tool_response_message(result) for result in results]
            current_response = await adapter.send_tool_responses(response_messages)

        logger.warning("Max tool loops (%d) reached. Stopping execution.", self._max_function_loops)
        return current_response

    async def execute_tool_calls(self, tool_calls: Sequence[ToolCallRequest]) -> List[ToolCallResult]:
        """Execute one turn's calls and return their results in call order.

        Raises:
            Exception: The first non-recoverable error raised by a tool, after
                every other call of the turn has finished.
        """
        batch = [ToolCall(tc.name, self._prepare_arguments(tc)) for tc in tool_calls]
        outcomes = await self._executor.execute_batch(batch, self._execute_call)

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        return [
            ToolCallResult(name=tc.name, response=outcome, call_id=tc.call_id)
            for tc, outcome in zip(tool_calls, outcomes)
        ]

    def _prepare_arguments(self, tool_call: ToolCallRequest) -> Any:
        """Decode arguments up front so the classifier sees a mapping.

        Undecodable arguments are passed on unchanged; such a call is scheduled
        serially and reports the parsing error when it runs.
        """
        try:
            return self._normalize_function_args(tool_call.name, tool_call.arguments)
        except ToolExecutionError:
            return tool_call.arguments

    async def _execute_call(self, tool_name: str, raw_args: Any) -> Dict[str, Any]:
        """Run one call and describe the outcome as a response payload."""
        try:
            function = self._tools.get(tool_name)
            if function is None:
                raise ToolNotFoundError(f"Tool '{tool_name}' not found in registry.")

            function_args = self._normalize_function_args(tool_name, raw_args)
            function_args = self._validate_arguments(tool_name, function_args)

            logger.info("Executing tool '%s'...", tool_name)
            function_result = await self._execute_tool(function, function_args)
            logger.info("Tool '%s' executed successfully.", tool_name)
        except self.RECOVERABLE_ERRORS as exc:
            msg = str(exc)
            logger.warning("Recoverable error in '%s': %s (%s)", tool_name, msg, type(exc).__name__)
            return {"error": msg}

        return {"result": function_result}

    def _validate_arguments(self, tool_name: str, function_args: Dict[str, Any]) -> Dict[str, Any]:
        model = self._argument_models.get(tool_name)
        if model is None:
            return function_args
        try:
            return model(**function_args).model_dump()
        except ValidationError as exc:
            raise ToolExecutionError(f"Argument validation failed: {exc}") from exc

    def _normalize_function_args(self, tool_name: str, raw_args: Any) -> Dict[str, Any]:
        """Normalize tool arguments into a dictionary.

        Handles JSON strings, mappings, or None values.

        Raises:
            ToolExecutionError: If arguments cannot be parsed or are invalid.
        """
        if raw_args is None or raw_args == "":
            return {}

        if isinstance(raw_args, dict):
            return raw_args

        if isinstance(raw_args, str):
            try:
                parsed = json.loads(raw_args)
            except json.JSONDecodeError as exc:
                raise ToolExecutionError(self._argument_error_formatter(tool_name, exc)) from exc

            if parsed is None:
                return {}

            if not isinstance(parsed, dict):
                error = ValueError("Function arguments must decode to a JSON object.")
                raise ToolExecutionError(self._argument_error_formatter(tool_name, error))

            return parsed

        try:
            return dict(raw_args)
        except (TypeError, ValueError) as exc:
            raise ToolExecutionError(self._argument_error_formatter(tool_name, exc)) from exc

    async def _execute_tool(self, tool_function: Callable[..., Any], function_args: Dict[str, Any]) -> Any:
        """Execute the tool function, handling async/sync and timeouts.

        A timed-out async tool is cancelled. A worker thread cannot be
        cancelled, so a timed-out sync tool is waited for before the timeout is
        reported; the call keeps its place in the schedule until it has stopped.

        Raises:
            ToolExecutionError: If execution times out.
        """
        if inspect.iscoroutinefunction(tool_function):
            try:
                return await asyncio.wait_for(tool_function(**function_args), timeout=self._tool_timeout)
            except asyncio.TimeoutError as exc:
                raise self._timeout_error() from exc

        worker = asyncio.ensure_future(asyncio.to_thread(tool_function, **function_args))
        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=self._tool_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Sync tool '%s' exceeded %s seconds; waiting for its thread to return.",
                getattr(tool_function, "__name__", tool_function),
                self._tool_timeout,
            )
            await asyncio.wait({worker})
            late_error = worker.exception()
            if late_error is not None:
                logger.warning("Timed-out tool raised after its deadline: %r", late_error)
            raise self._timeout_error() from exc

    def _timeout_error(self) -> ToolExecutionError:
        return ToolExecutionError(f"Tool execution timed out after {self._tool_timeout} seconds.")

    @staticmethod
    def _default_argument_error(tool_name: str, error: Exception) -> str:
        return f"Failed to parse arguments for tool '{tool_name}': {error}"
