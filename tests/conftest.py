import asyncio
import itertools
from typing import Any, Dict, Mapping, Optional, Set, Tuple

import pytest

from parallel_tool_lib import ParallelConfig, ParallelExecutor


class CallRecorder:
    """
    Instrumented tool callback.

    Every call records a (start, end) window on a shared logical clock, so
    overlap checks do not depend on wall-clock timing.
    """

    def __init__(self, delay: float = 0.01, fail_ids: Optional[Set[Any]] = None) -> None:
        self.delay = delay
        self.fail_ids = fail_ids or set()
        self.windows: Dict[Any, Tuple[int, int]] = {}
        self.started: list = []
        self.active = 0
        self.max_active = 0
        self.cancelled = 0
        self._clock = itertools.count()

    async def __call__(self, name: str, tool_input: Mapping[str, Any]) -> str:
        key = tool_input.get("id", name) if isinstance(tool_input, Mapping) else name
        start = next(self._clock)
        self.started.append(key)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(tool_input.get("delay", self.delay) if isinstance(tool_input, Mapping) else self.delay)
            if key in self.fail_ids:
                raise RuntimeError(f"tool {key} failed")
            return f"{name}:{key}"
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1
            self.windows[key] = (start, next(self._clock))

    def overlaps(self, a: Any, b: Any) -> bool:
        a_start, a_end = self.windows[a]
        b_start, b_end = self.windows[b]
        return a_start < b_end and b_start < a_end


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


@pytest.fixture
def executor() -> ParallelExecutor:
    return ParallelExecutor(ParallelConfig())


@pytest.fixture(autouse=True)
def clean_parallel_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for suffix in ("ENABLED", "MAX_CONCURRENCY", "SERIAL_PATTERNS"):
        monkeypatch.delenv(f"PARALLEL_TOOLS_{suffix}", raising=False)


@pytest.fixture
def make_recorder():
    """Factory for recorders with a custom delay or failing call ids."""
    return CallRecorder
