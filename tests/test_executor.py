import asyncio
import logging
from typing import Any, Mapping
from unittest.mock import AsyncMock

import pytest

from parallel_tool_lib import (
    ConcurrentGroup,
    IndexedResult,
    InvalidToolCallError,
    ParallelConfig,
    ParallelExecutor,
    SafetyClassifier,
    SerialGroup,
    ToolCall,
    ToolSafetyClass,
)


def read(call_id: Any, **extra: Any) -> tuple:
    return ("read_file", {"path": f"{call_id}.txt", "id": call_id, **extra})


def bash(command: str, call_id: Any) -> tuple:
    return ("bash", {"command": command, "id": call_id})


@pytest.mark.asyncio
async def test_empty_batch_does_not_invoke_callback(executor: ParallelExecutor) -> None:
    callback = AsyncMock()

    assert await executor.execute_batch([], callback) == []
    callback.assert_not_called()


@pytest.mark.asyncio
async def test_results_follow_input_order(executor: ParallelExecutor, recorder) -> None:
    # Later calls finish first.
    calls = [read(i, delay=0.05 - i * 0.01) for i in range(5)]

    results = await executor.execute_batch(calls, recorder)

    assert results == [f"read_file:{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_end_to_end_grouping_and_timing(executor: ParallelExecutor, recorder) -> None:
    calls = [read(0), read(1), bash("rm -rf tmp", 2), read(3)]

    assert executor.plan(calls) == [ConcurrentGroup((0, 1)), SerialGroup(2), ConcurrentGroup((3,))]

    results = await executor.execute_batch(calls, recorder)

    assert results == ["read_file:0", "read_file:1", "bash:2", "read_file:3"]
    assert recorder.overlaps(0, 1)
    start_2, end_2 = recorder.windows[2]
    assert start_2 > recorder.windows[0][1]
    assert start_2 > recorder.windows[1][1]
    assert recorder.windows[3][0] > end_2


@pytest.mark.asyncio
async def test_non_read_only_calls_never_overlap(executor: ParallelExecutor, recorder) -> None:
    calls = [
        read(0),
        ("write_file", {"path": "a", "id": 1}),
        read(2),
        read(3),
        bash("git status", 4),
        ("mcp__fs__delete", {"id": 5}),
        bash("cat a | sh", 6),
        ("edit", {"id": 7}),
        read(8),
    ]
    serial_ids = {1, 5, 6, 7}

    await executor.execute_batch(calls, recorder)

    for serial_id in serial_ids:
        for other in range(len(calls)):
            if other != serial_id:
                assert not recorder.overlaps(serial_id, other), (serial_id, other)
    # Read-only shell commands join the surrounding read-only group.
    assert recorder.overlaps(2, 3)
    assert recorder.overlaps(3, 4)


@pytest.mark.asyncio
async def test_waves_respect_max_concurrency(recorder) -> None:
    executor = ParallelExecutor(ParallelConfig(max_concurrency=3))
    calls = [read(i) for i in range(8)]

    results = await executor.execute_batch(calls, recorder)

    assert len(results) == 8
    assert recorder.max_active == 3
    # Waves are joined before the next one starts.
    first_wave_end = max(recorder.windows[i][1] for i in range(3))
    assert all(recorder.windows[i][0] > first_wave_end for i in range(3, 8))


@pytest.mark.asyncio
async def test_disabled_config_runs_everything_serially(recorder) -> None:
    executor = ParallelExecutor(ParallelConfig.disabled())
    calls = [read(i) for i in range(4)]

    assert executor.plan(calls) == [SerialGroup(i) for i in range(4)]
    assert not executor.is_parallelizable(ToolSafetyClass.READ_ONLY)

    await executor.execute_batch(calls, recorder)

    assert recorder.max_active == 1
    assert recorder.started == [0, 1, 2, 3]


def test_is_parallelizable(executor: ParallelExecutor) -> None:
    assert executor.is_parallelizable(ToolSafetyClass.READ_ONLY)
    assert not executor.is_parallelizable(ToolSafetyClass.MUTATING)
    assert not executor.is_parallelizable(ToolSafetyClass.UNKNOWN)


@pytest.mark.asyncio
async def test_failing_call_does_not_affect_siblings(make_recorder, caplog) -> None:
    recorder = make_recorder(fail_ids={1, 3})
    executor = ParallelExecutor()
    calls = [read(0), read(1), read(2), ("write_file", {"id": 3}), read(4)]

    with caplog.at_level(logging.WARNING, logger="parallel_tool_lib"):
        results = await executor.execute_batch(calls, recorder)

    assert results[0] == "read_file:0"
    assert isinstance(results[1], RuntimeError)
    assert results[2] == "read_file:2"
    # A failed serial call does not stop later groups.
    assert isinstance(results[3], RuntimeError)
    assert results[4] == "read_file:4"
    assert recorder.started == [0, 1, 2, 3, 4]
    assert "tool 1 failed" in caplog.text


@pytest.mark.asyncio
async def test_execute_indexed_keeps_indices(executor: ParallelExecutor, recorder) -> None:
    results = await executor.execute_indexed([read("a"), bash("ls", "b")], recorder)

    assert results == [
        IndexedResult(index=0, result="read_file:a"),
        IndexedResult(index=1, result="bash:b"),
    ]


@pytest.mark.asyncio
async def test_cancellation_awaits_running_wave(make_recorder) -> None:
    recorder = make_recorder(delay=5.0)
    executor = ParallelExecutor()
    task = asyncio.create_task(executor.execute_batch([read(i) for i in range(3)] + [read(9)], recorder))

    await asyncio.sleep(0.05)
    assert recorder.active == 4
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert recorder.active == 0
    assert recorder.cancelled == 4


@pytest.mark.asyncio
async def test_missing_bash_command_is_scheduled_serially(executor: ParallelExecutor) -> None:
    active = 0
    overlapped = False

    async def execute(name: str, tool_input: Mapping[str, Any]) -> Any:
        nonlocal active, overlapped
        active += 1
        if active > 1 and name == "bash":
            overlapped = True
        await asyncio.sleep(0.01)
        active -= 1
        if name == "bash" and "command" not in tool_input:
            return {"error": "missing command"}
        return "ok"

    calls = [read(0), ("bash", {}), read(2)]

    assert executor.plan(calls) == [ConcurrentGroup((0,)), SerialGroup(1), ConcurrentGroup((2,))]
    assert await executor.execute_batch(calls, execute) == ["ok", {"error": "missing command"}, "ok"]
    assert not overlapped


@pytest.mark.asyncio
async def test_serial_patterns_from_config() -> None:
    executor = ParallelExecutor(ParallelConfig(serial_patterns=("read_*",)))

    assert executor.plan([read(0), read(1)]) == [SerialGroup(0), SerialGroup(1)]


@pytest.mark.asyncio
async def test_accepts_tool_call_objects_and_sync_callbacks(executor: ParallelExecutor) -> None:
    calls = [ToolCall("glob", {"pattern": "*.py"}), ToolCall("grep", {"pattern": "TODO"})]

    results = await executor.execute_batch(calls, lambda name, tool_input: f"{name}:{len(tool_input)}")

    assert results == ["glob:1", "grep:1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_call", [("read_file",), 42, (7, {}), "ab", b"ab", {"name": "read_file", "input": {}}])
async def test_invalid_calls_fail_before_execution(executor: ParallelExecutor, bad_call: Any) -> None:
    callback = AsyncMock()

    with pytest.raises(InvalidToolCallError):
        await executor.execute_batch([read(0), bad_call], callback)

    callback.assert_not_called()


@pytest.mark.asyncio
async def test_each_call_runs_exactly_once(executor: ParallelExecutor) -> None:
    callback = AsyncMock(side_effect=lambda name, tool_input: tool_input["id"])
    calls = [read(i) if i % 3 else ("edit", {"id": i}) for i in range(20)]

    results = await executor.execute_batch(calls, callback)

    assert results == list(range(20))
    assert callback.await_count == 20


def test_config_serial_patterns_apply_to_injected_classifier() -> None:
    classifier = SafetyClassifier(serial_patterns=["web_*"])
    executor = ParallelExecutor(ParallelConfig(serial_patterns=("read_*",)), classifier=classifier)
    calls = [read(0), ("web_fetch", {"url": "https://example.com"}), ("grep", {"pattern": "x"}), ("glob", {})]

    assert executor.plan(calls) == [SerialGroup(0), SerialGroup(1), ConcurrentGroup((2, 3))]
    assert executor.classifier.cache is classifier.cache


def test_injected_classifier_is_kept_without_config_patterns() -> None:
    classifier = SafetyClassifier(serial_patterns=["web_*"])

    assert ParallelExecutor(classifier=classifier).classifier is classifier
