"""Glob-style pattern matching for tool names and command text.

Supported syntax:

- ``*`` matches any sequence of characters (including none)
- ``?`` matches exactly one character
- anything else matches literally

Compiled patterns are memoized in a :class:`PatternCache`. Each cache is an
ordinary object owned by whoever needs it, so two classifiers never share
compiled state.
"""

from __future__ import annotations

import re
import threading
from collections import OrderedDict
from typing import Optional, Pattern

from ..core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_SIZE = 100


class PatternCache:
    """Bounded LRU cache of compiled glob patterns, safe to share between threads."""

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: "OrderedDict[str, Pattern[str]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, pattern: object) -> bool:
        with self._lock:
            return pattern in self._entries

    def get(self, pattern: str) -> Optional[Pattern[str]]:
        with self._lock:
            compiled = self._entries.get(pattern)
            if compiled is not None:
                self._entries.move_to_end(pattern)
            return compiled

    def put(self, pattern: str, compiled: Pattern[str]) -> None:
        with self._lock:
            self._entries[pattern] = compiled
            self._entries.move_to_end(pattern)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted pattern '%s' from cache.", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def compile_pattern(pattern: str) -> Pattern[str]:
    """Translate a glob pattern into an anchored regular expression.

    Raises:
        re.error: If the translated expression is invalid.
    """
    parts = ["^"]
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    parts.append("$")
    return re.compile("".join(parts), re.DOTALL)


def matches_pattern(pattern: str, value: str, cache: Optional[PatternCache] = None) -> bool:
    """Check whether ``value`` matches the glob ``pattern``.

    Args:
        pattern: Pattern using ``*`` and ``?`` wildcards.
        value: Text to test.
        cache: Optional cache for compiled patterns.

    Returns:
        True on a full match. Invalid patterns never match.
    """
    if "*" not in pattern and "?" not in pattern:
        return pattern == value

    compiled = cache.get(pattern) if cache is not None else None
    if compiled is None:
        try:
            compiled = compile_pattern(pattern)
        except re.error:
            logger.warning("Ignoring invalid pattern '%s'.", pattern)
            return False
        if cache is not None:
            cache.put(pattern, compiled)

    return compiled.match(value) is not None


def extract_command_prefix(command: str) -> Optional[str]:
    """Return the first whitespace-delimited token of a command, if any."""
    tokens = command.split()
    return tokens[0] if tokens else None


def normalize_input(text: str) -> str:
    """Trim and collapse runs of whitespace to single spaces."""
    return " ".join(text.split())
