"""Safety classification of tool calls.

Classification answers one question: can this call run at the same time as
other calls without anyone noticing? Only a positive proof yields
``READ_ONLY``; anything the rules do not recognize is ``UNKNOWN`` and will be
run on its own.

There are two levels. :func:`classify_tool` only looks at the tool name, and
reports ``UNKNOWN`` for the shell tool. :func:`classify_bash_command` decides
the shell case from the command text. :func:`classify_call` combines them.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.logger import get_logger
from .allowlists import (
    CARGO_MUTATING_FLAGS,
    GIT_FLAGS_WITH_ARGS,
    GIT_FORBIDDEN_GLOBAL_FLAGS,
    GIT_LIST_FLAGS,
    GIT_MUTATING_FLAGS,
    GIT_REF_SUBCOMMAND_FLAGS,
    GIT_REFLOG_READ_ACTIONS,
    MAX_POSITIONAL_ARGS,
    MCP_TOOL_PREFIX,
    MUTATING_FLAGS,
    MUTATING_TOOLS,
    READ_ONLY_TOOLS,
    SAFE_BASH_COMMANDS,
    SHELL_OPERATORS,
    SHELL_TOOL,
    SUBCOMMAND_ALLOWLISTS,
)
from .models import ToolSafetyClass
from .patterns import PatternCache, extract_command_prefix, matches_pattern, normalize_input

logger = get_logger(__name__)

_AWK_SYSTEM_CALL = re.compile(r"system\s*\(")


def classify_tool(tool_name: str) -> ToolSafetyClass:
    """Classify a tool by name alone.

    Args:
        tool_name: Name of the tool as requested by the model.

    Returns:
        ``READ_ONLY`` or ``MUTATING`` for the built-in tools, ``UNKNOWN`` for the
        shell tool, MCP tools and every name not listed.
    """
    if tool_name in READ_ONLY_TOOLS:
        return ToolSafetyClass.READ_ONLY
    if tool_name in MUTATING_TOOLS:
        return ToolSafetyClass.MUTATING
    if tool_name == SHELL_TOOL:
        return ToolSafetyClass.UNKNOWN
    if tool_name.startswith(MCP_TOOL_PREFIX):
        return ToolSafetyClass.UNKNOWN
    return ToolSafetyClass.UNKNOWN


def classify_bash_command(command: str) -> ToolSafetyClass:
    """Classify a shell command from its text.

    The command is ``READ_ONLY`` only if it contains no chaining, redirection or
    substitution operator, its first word is an allowlisted command, none of
    that command's writing flags are present, and for ``git``/``cargo``/``npm``
    the subcommand is a read-only one.

    Args:
        command: Full command line as it would be passed to the shell.

    Returns:
        ``READ_ONLY`` or ``UNKNOWN``; shell commands are never ``MUTATING``
        because a mutation cannot be proven either.

    Examples:
        >>> classify_bash_command("ls -la")
        <ToolSafetyClass.READ_ONLY: 'read_only'>
        >>> classify_bash_command("ls | grep foo")
        <ToolSafetyClass.UNKNOWN: 'unknown'>
    """
    # Operators are checked on the raw text; normalizing would fold newlines away.
    if contains_shell_operators(command):
        return ToolSafetyClass.UNKNOWN

    normalized = normalize_input(command)
    base = extract_command_prefix(normalized)
    if base is None or base not in SAFE_BASH_COMMANDS:
        return ToolSafetyClass.UNKNOWN

    tokens = normalized.split()
    if has_mutating_flags(normalized, base, tokens[1:]):
        return ToolSafetyClass.UNKNOWN

    if base == "git":
        return _classify_git(tokens[1:])
    if base == "cargo":
        return _classify_cargo(tokens[1:])
    if base == "npm":
        return _classify_npm(tokens[1:])

    return ToolSafetyClass.READ_ONLY


def classify_call(tool_name: str, tool_input: Any) -> ToolSafetyClass:
    """Classify a full tool call, looking at the command text for the shell tool.

    A shell call without a string ``command`` is ``UNKNOWN``; it still runs, on
    its own, and the tool reports the missing argument.
    """
    if tool_name == SHELL_TOOL:
        command = tool_input.get("command") if isinstance(tool_input, Mapping) else None
        if not isinstance(command, str):
            return ToolSafetyClass.UNKNOWN
        return classify_bash_command(command)
    return classify_tool(tool_name)


def contains_shell_operators(command: str) -> bool:
    """True if the command chains, redirects, substitutes or backgrounds anything."""
    return any(op in command for op in SHELL_OPERATORS)


def has_mutating_flags(command: str, base_command: str, args: Sequence[str]) -> bool:
    """True if the arguments turn ``base_command`` into something that writes."""
    if base_command == "sed" and (" -i" in command or " --in-place" in command):
        return True

    flags = MUTATING_FLAGS.get(base_command)
    if flags and any(_matches_flag(arg, flag) for arg in args for flag in flags):
        return True

    # awk accepts blanks between a built-in's name and its argument list.
    if base_command == "awk" and _AWK_SYSTEM_CALL.search(command):
        return True

    limit = MAX_POSITIONAL_ARGS.get(base_command)
    if limit is not None and len(_positional(args)) > limit:
        return True

    if base_command == "env":
        # Anything besides flags and NAME=value is a program for env to run.
        return any(not arg.startswith("-") and "=" not in arg for arg in args)

    return False


def _matches_flag(arg: str, flag: str) -> bool:
    if arg == flag or arg.startswith(f"{flag}="):
        return True
    if flag.startswith("--"):
        # getopt_long and git accept any unambiguous prefix ("--in-pl").
        name = arg.split("=", 1)[0]
        return name.startswith("--") and len(name) >= 3 and flag.startswith(name)
    # Short options can be clustered ("-ni") or carry an attached value ("-i.bak").
    if len(flag) == 2 and flag[0] == "-":
        return arg.startswith("-") and not arg.startswith("--") and flag[1] in arg[1:]
    return False


def _positional(args: Iterable[str]) -> List[str]:
    return [arg for arg in args if not arg.startswith("-")]


def _find_subcommand(args: Sequence[str], flags_with_args: Iterable[str] = ()) -> Tuple[Optional[str], int]:
    """Return the first non-flag token and its position in ``args``."""
    takes_value = set(flags_with_args)
    skip_next = False
    for position, arg in enumerate(args):
        if skip_next:
            skip_next = False
            continue
        if arg.startswith("-"):
            if arg in takes_value:
                skip_next = True
            continue
        return arg, position
    return None, len(args)


def _classify_git(args: Sequence[str]) -> ToolSafetyClass:
    subcommand, position = _find_subcommand(args, GIT_FLAGS_WITH_ARGS)
    global_flags = args[:position]
    if any(_matches_flag(flag, forbidden) for flag in global_flags for forbidden in GIT_FORBIDDEN_GLOBAL_FLAGS):
        return ToolSafetyClass.UNKNOWN
    if subcommand is None or subcommand not in SUBCOMMAND_ALLOWLISTS["git"]:
        return ToolSafetyClass.UNKNOWN

    rest = args[position + 1 :]
    if any(_matches_flag(arg, flag) for arg in rest for flag in GIT_MUTATING_FLAGS):
        return ToolSafetyClass.UNKNOWN

    ref_flags = GIT_REF_SUBCOMMAND_FLAGS.get(subcommand)
    if ref_flags is not None:
        if any(_matches_flag(arg, flag) for arg in rest for flag in ref_flags):
            return ToolSafetyClass.UNKNOWN
        listing = any(arg in GIT_LIST_FLAGS for arg in rest)
        if _positional(rest) and not listing:
            return ToolSafetyClass.UNKNOWN

    if subcommand == "reflog":
        action = next(iter(_positional(rest)), None)
        if action is not None and action not in GIT_REFLOG_READ_ACTIONS:
            return ToolSafetyClass.UNKNOWN

    return ToolSafetyClass.READ_ONLY


def _classify_cargo(args: Sequence[str]) -> ToolSafetyClass:
    # "+nightly" selects a toolchain and precedes the subcommand.
    subcommand, _ = _find_subcommand([arg for arg in args if not arg.startswith("+")])
    if subcommand is None or subcommand not in SUBCOMMAND_ALLOWLISTS["cargo"]:
        return ToolSafetyClass.UNKNOWN
    if any(arg == flag or arg.startswith(f"{flag}=") for arg in args for flag in CARGO_MUTATING_FLAGS):
        return ToolSafetyClass.UNKNOWN
    return ToolSafetyClass.READ_ONLY


def _classify_npm(args: Sequence[str]) -> ToolSafetyClass:
    subcommand, position = _find_subcommand(args)
    if subcommand is None or subcommand not in SUBCOMMAND_ALLOWLISTS["npm"]:
        return ToolSafetyClass.UNKNOWN
    if subcommand == "audit" and "fix" in _positional(args[position + 1 :]):
        return ToolSafetyClass.UNKNOWN
    return ToolSafetyClass.READ_ONLY


class SafetyClassifier:
    """
    Classifier instance used by the executor.

    It applies :func:`classify_call` and additionally forces every tool whose
    name matches one of ``serial_patterns`` to ``UNKNOWN``. Patterns can only
    make a call more restricted, never less.
    """

    def __init__(self, serial_patterns: Iterable[str] = (), cache: Optional[PatternCache] = None) -> None:
        """Initialize the classifier.

        Args:
            serial_patterns: Glob patterns of tool names that must always run serially.
            cache: Cache for compiled patterns. A private one is created when omitted.
        """
        self.serial_patterns: Tuple[str, ...] = tuple(serial_patterns)
        self.cache = cache if cache is not None else PatternCache()

    def with_serial_patterns(self, patterns: Iterable[str]) -> "SafetyClassifier":
        """Return a classifier that also serializes ``patterns``, sharing this one's cache."""
        merged = self.serial_patterns + tuple(p for p in patterns if p not in self.serial_patterns)
        return type(self)(merged, cache=self.cache)

    def classify(self, tool_name: str, tool_input: Any) -> ToolSafetyClass:
        """Classify one call."""
        if self._forced_serial(tool_name):
            logger.debug("Tool '%s' matches a serial pattern.", tool_name)
            return ToolSafetyClass.UNKNOWN
        safety = classify_call(tool_name, tool_input)
        logger.debug("Classified '%s' as %s.", tool_name, safety.value)
        return safety

    def _forced_serial(self, tool_name: str) -> bool:
        return any(matches_pattern(pattern, tool_name, self.cache) for pattern in self.serial_patterns)
