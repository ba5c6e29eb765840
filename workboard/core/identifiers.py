"""Hierarchical work-item identifiers.

An id such as ``context-0001-0002-0003`` is a label prefix (``context``)
followed by zero-padded numeric segments, one per level of the hierarchy.
The segment path alone positions the item; the prefix is a label and may
differ between levels (``epic-0001`` is the parent of ``story-0001-0002``).
"""

from __future__ import annotations

from typing import NamedTuple

from workboard.models.work_items import WorkItemType

SEPARATOR = "-"

_TYPES_BY_DEPTH: dict[int, WorkItemType] = {
    0: WorkItemType.PROJECT,
    1: WorkItemType.EPIC,
    2: WorkItemType.STORY,
    3: WorkItemType.TASK,
    4: WorkItemType.SUBTASK,
}


class ParsedId(NamedTuple):
    prefix: str
    segments: tuple[str, ...]

    @property
    def depth(self) -> int:
        return len(self.segments)


def parse_id(item_id: str) -> ParsedId:
    """Split an id into its label prefix and trailing numeric segments."""
    parts = item_id.split(SEPARATOR)
    split_at = len(parts)
    while split_at > 1 and parts[split_at - 1].isdigit():
        split_at -= 1
    # An id made only of digits ("0001") has no label.
    if split_at == 1 and parts[0].isdigit():
        split_at = 0
    prefix = SEPARATOR.join(parts[:split_at])
    return ParsedId(prefix, tuple(parts[split_at:]))


def item_type(item_id: str) -> WorkItemType:
    return _TYPES_BY_DEPTH.get(parse_id(item_id).depth, WorkItemType.UNKNOWN)


def parent_id(item_id: str) -> str | None:
    """The id with its last segment removed; None for projects and epics."""
    parsed = parse_id(item_id)
    if parsed.depth <= 1:
        return None
    parent_parts = ([parsed.prefix] if parsed.prefix else []) + list(parsed.segments[:-1])
    return SEPARATOR.join(parent_parts)


def hierarchy_key(item_id: str) -> tuple[str, ...]:
    """The segment path used to match parents across differing prefixes."""
    return parse_id(item_id).segments


def parent_key(item_id: str) -> tuple[str, ...] | None:
    segments = parse_id(item_id).segments
    if len(segments) <= 1:
        return None
    return segments[:-1]
