"""Partitioning of classified tool calls into ordered execution groups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

from ..classification.models import ToolSafetyClass


@dataclass(frozen=True)
class ConcurrentGroup:
    """Adjacent read-only calls that may run at the same time."""

    indices: Tuple[int, ...]


@dataclass(frozen=True)
class SerialGroup:
    """A single mutating or unknown call that must run alone."""

    index: int

    @property
    def indices(self) -> Tuple[int, ...]:
        return (self.index,)


ExecutionGroup = Union[ConcurrentGroup, SerialGroup]


def plan_groups(classes: Iterable[ToolSafetyClass], *, parallel: bool = True) -> List[ExecutionGroup]:
    """Group calls so that only read-only neighbours share a group.

    The plan never reorders calls: every member of group ``i`` precedes every
    member of group ``i + 1`` in the input.

    Args:
        classes: Safety class of each call, in input order.
        parallel: When False, every call gets its own serial group.

    Returns:
        The ordered list of groups.
    """
    groups: List[ExecutionGroup] = []
    pending: List[int] = []

    for index, safety in enumerate(classes):
        if parallel and safety.is_parallelizable:
            pending.append(index)
            continue
        if pending:
            groups.append(ConcurrentGroup(tuple(pending)))
            pending = []
        groups.append(SerialGroup(index))

    if pending:
        groups.append(ConcurrentGroup(tuple(pending)))

    return groups
