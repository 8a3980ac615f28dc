import asyncio
import time
from pathlib import Path
from typing import Any, Mapping

from parallel_tool_lib import ParallelConfig, ParallelExecutor, setup_logging


async def execute(name: str, tool_input: Mapping[str, Any]) -> Any:
    """
    Stand-in tool runner: every call sleeps for a moment and echoes its input.
    """
    await asyncio.sleep(0.2)
    if name == "bash" and "command" not in tool_input:
        return {"error": "missing command"}
    return {"tool": name, "input": dict(tool_input)}


async def main() -> None:
    """
    Run one mixed batch and show how it was grouped and how long it took.
    """
    setup_logging()
    env_file = Path(".env")
    config = ParallelConfig.from_env(env_file if env_file.exists() else None)
    executor = ParallelExecutor(config)

    calls = [
        ("read_file", {"path": "README.md"}),
        ("grep", {"pattern": "TODO"}),
        ("bash", {"command": "git log --oneline -5"}),
        ("write_file", {"path": "notes.txt", "content": "hi"}),
        ("glob", {"pattern": "**/*.py"}),
        ("bash", {"command": "cat setup.cfg | sh"}),
        ("web_fetch", {"url": "https://example.com"}),
    ]

    for group in executor.plan(calls):
        print(f"{type(group).__name__}: {[calls[i][0] for i in group.indices]}")

    start = time.perf_counter()
    results = await executor.execute_batch(calls, execute)
    elapsed = time.perf_counter() - start

    for (name, _), result in zip(calls, results):
        print(f"{name}: {result}")
    print(f"\n{len(calls)} calls finished in {elapsed:.2f}s (serial would take {0.2 * len(calls):.2f}s).")


if __name__ == "__main__":
    asyncio.run(main())
