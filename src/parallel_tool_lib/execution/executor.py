"""Batch execution of tool calls, concurrent where classification allows it."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Mapping, Optional, Sequence, TypeVar, Union

from ..classification.classifier import SafetyClassifier
from ..classification.models import ToolCall, ToolSafetyClass
from ..core.config import ParallelConfig
from ..core.exceptions import InvalidToolCallError
from ..core.logger import get_logger
from .planner import ConcurrentGroup, ExecutionGroup, plan_groups

logger = get_logger(__name__)

T = TypeVar("T")

ExecuteFn = Callable[[str, Mapping[str, Any]], Union[Awaitable[T], T]]


@dataclass(frozen=True)
class IndexedResult(Generic[T]):
    """Outcome of one call together with its position in the submitted batch."""

    index: int
    result: Union[T, BaseException]


class ParallelExecutor:
    """
    Runs a batch of tool calls while keeping the outcome identical to running
    them one after another.

    Calls are classified, then grouped: adjacent read-only calls form a group
    that runs concurrently in waves of at most ``config.max_concurrency``
    tasks; every other call forms a group of its own. A group starts only
    after the previous one has fully finished.

    If the callback raises, the exception instance is the result for that call.
    It does not affect other calls in the batch.
    """

    def __init__(self, config: Optional[ParallelConfig] = None, classifier: Optional[SafetyClassifier] = None) -> None:
        """Initialize the executor.

        Args:
            config: Execution settings. Defaults to ``ParallelConfig()``.
            classifier: Classifier to use. Defaults to one built from ``config.serial_patterns``;
                a given classifier is extended with those patterns.
        """
        self.config = config or ParallelConfig()
        if classifier is None:
            classifier = SafetyClassifier(self.config.serial_patterns)
        elif self.config.serial_patterns:
            classifier = classifier.with_serial_patterns(self.config.serial_patterns)
        self.classifier = classifier

    def is_parallelizable(self, safety: ToolSafetyClass) -> bool:
        """Whether calls of this class may share a concurrent group."""
        return self.config.enabled and safety.is_parallelizable

    def plan(self, calls: Iterable[Union[ToolCall, Sequence[Any]]]) -> List[ExecutionGroup]:
        """Return the execution plan for ``calls`` without running anything."""
        return self._plan(self._coerce(calls))

    async def execute_batch(
        self,
        calls: Iterable[Union[ToolCall, Sequence[Any]]],
        execute: ExecuteFn[T],
    ) -> List[Union[T, BaseException]]:
        """Execute every call and return the outcomes in input order.

        Args:
            calls: ``(name, input)`` pairs or :class:`ToolCall` objects.
            execute: Callback invoked as ``execute(name, input)`` for each call.
                It may be a coroutine function or return a plain value.

        Returns:
            One outcome per call, ``result[i]`` belonging to ``calls[i]``.

        Raises:
            InvalidToolCallError: If an element of ``calls`` is not a
                ``(str, input)`` pair. Raised before any call is started.
        """
        indexed = await self.execute_indexed(calls, execute)
        return [item.result for item in indexed]

    async def execute_indexed(
        self,
        calls: Iterable[Union[ToolCall, Sequence[Any]]],
        execute: ExecuteFn[T],
    ) -> List[IndexedResult[T]]:
        """Like :meth:`execute_batch`, but keeps the input index next to each outcome."""
        batch = self._coerce(calls)
        if not batch:
            return []

        groups = self._plan(batch)
        logger.debug(
            "Executing %d call(s) in %d group(s): %s.",
            len(batch),
            len(groups),
            ", ".join(self._describe(group) for group in groups),
        )

        slots: List[Any] = [None] * len(batch)
        for group in groups:
            if isinstance(group, ConcurrentGroup):
                await self._run_concurrent(group, batch, execute, slots)
            else:
                await self._run_wave([group.index], batch, execute, slots)

        return [IndexedResult(index=index, result=result) for index, result in enumerate(slots)]

    async def _run_concurrent(
        self,
        group: ConcurrentGroup,
        batch: Sequence[ToolCall],
        execute: ExecuteFn[T],
        slots: List[Any],
    ) -> None:
        size = self.config.max_concurrency
        indices = group.indices
        for start in range(0, len(indices), size):
            wave = indices[start : start + size]
            logger.debug("Starting wave of %d read-only call(s): %s.", len(wave), list(wave))
            await self._run_wave(wave, batch, execute, slots)

    async def _run_wave(
        self,
        indices: Sequence[int],
        batch: Sequence[ToolCall],
        execute: ExecuteFn[T],
        slots: List[Any],
    ) -> None:
        # gather cancels and awaits every task of the wave if this coroutine is cancelled.
        results = await asyncio.gather(
            *(self._invoke(batch[index], execute) for index in indices),
            return_exceptions=True,
        )
        for index, result in zip(indices, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Tool '%s' (call %d) raised %s: %s",
                    batch[index].name,
                    index,
                    type(result).__name__,
                    result,
                )
            slots[index] = result

    @staticmethod
    async def _invoke(call: ToolCall, execute: ExecuteFn[T]) -> T:
        result = execute(call.name, call.input)
        if inspect.isawaitable(result):
            return await result
        return result

    def _plan(self, batch: Sequence[ToolCall]) -> List[ExecutionGroup]:
        classes = [self.classifier.classify(call.name, call.input) for call in batch]
        return plan_groups(classes, parallel=self.config.enabled)

    @staticmethod
    def _coerce(calls: Iterable[Union[ToolCall, Sequence[Any]]]) -> List[ToolCall]:
        batch: List[ToolCall] = []
        for position, call in enumerate(calls):
            if isinstance(call, ToolCall):
                item = call
            elif isinstance(call, (str, bytes, Mapping)):
                # These unpack into two items too ("ab", {"a": 1, "b": 2}).
                raise InvalidToolCallError(f"Tool call {position} must be a (name, input) pair, got {call!r}.")
            else:
                try:
                    name, tool_input = call
                except (TypeError, ValueError) as exc:
                    raise InvalidToolCallError(
                        f"Tool call {position} must be a (name, input) pair, got {call!r}."
                    ) from exc
                item = ToolCall(name, tool_input)
            if not isinstance(item.name, str):
                raise InvalidToolCallError(f"Tool call {position} has a non-string name: {item.name!r}.")
            batch.append(item)
        return batch

    @staticmethod
    def _describe(group: ExecutionGroup) -> str:
        if isinstance(group, ConcurrentGroup):
            return f"concurrent{list(group.indices)}"
        return f"serial[{group.index}]"
