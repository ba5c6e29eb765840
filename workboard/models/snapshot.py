"""Snapshot models — the immutable, published unit of truth.

A Snapshot is built completely in local memory by the HierarchyBuilder and
only then handed to the Coordinator, which swaps its published reference in
a single assignment.  Nothing in this module mutates a Snapshot after
construction; a rebuild always produces a new one.

Storage follows an arena layout: every record lives in ``items_by_id`` and
every node in ``nodes_by_id``.  A node's link to its parent is the parent's
id, resolved through the snapshot, so the structure stays a forest and can
be serialized without cycles.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from workboard.models.work_items import WorkItemRecord, WorkItemStatus, WorkItemType


class WarningKind(str, Enum):
    SCAN_ERROR = "scan_error"
    PARSE_ERROR = "parse_error"
    ORPHAN = "orphan"
    DUPLICATE_ID = "duplicate_id"
    WATCH_ERROR = "watch_error"


class SnapshotWarning(BaseModel):
    """A non-fatal anomaly surfaced alongside the data it concerns."""

    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    message: str
    path: Path | None = None
    item_id: str | None = None
    related_paths: tuple[Path, ...] = ()


class HierarchyNode(BaseModel):
    """A record plus its ordered children.

    ``parent_id`` is a lookup-only back-reference; the node does not own
    or hold its parent.
    """

    model_config = ConfigDict(frozen=True)

    record: WorkItemRecord
    children: tuple[HierarchyNode, ...] = ()
    parent_id: str | None = None
    orphan: bool = False

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def child_ids(self) -> list[str]:
        return [child.record.id for child in self.children]


class ItemProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    completed: int
    percentage: int


class Snapshot(BaseModel):
    """Point-in-time hierarchy of all work items plus its warnings."""

    model_config = ConfigDict(frozen=True)

    items_by_id: dict[str, WorkItemRecord] = {}
    nodes_by_id: dict[str, HierarchyNode] = {}
    roots: tuple[HierarchyNode, ...] = ()
    warnings: tuple[SnapshotWarning, ...] = ()
    source_file_count: int = 0
    generation: int = 0
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, item_id: str) -> WorkItemRecord | None:
        return self.items_by_id.get(item_id)

    def node(self, item_id: str) -> HierarchyNode | None:
        return self.nodes_by_id.get(item_id)

    def parent_of(self, item_id: str) -> WorkItemRecord | None:
        """Resolve a node's back-reference to its parent record."""
        node = self.nodes_by_id.get(item_id)
        if node is None or node.parent_id is None:
            return None
        return self.items_by_id.get(node.parent_id)

    def all_items(self) -> list[WorkItemRecord]:
        """Every record, ordered by id."""
        return [self.items_by_id[item_id] for item_id in sorted(self.items_by_id)]

    @property
    def root_ids(self) -> list[str]:
        return [root.record.id for root in self.roots]

    @property
    def orphans(self) -> list[HierarchyNode]:
        return [root for root in self.roots if root.orphan]

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def is_empty(self) -> bool:
        return not self.items_by_id

    def warnings_of(self, kind: WarningKind) -> list[SnapshotWarning]:
        return [w for w in self.warnings if w.kind == kind]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def ancestors(self, item_id: str) -> list[WorkItemRecord]:
        """Ancestors from the immediate parent up to the root."""
        result: list[WorkItemRecord] = []
        current = self.parent_of(item_id)
        while current is not None:
            result.append(current)
            current = self.parent_of(current.id)
        return result

    def descendants(self, item_id: str) -> list[WorkItemRecord]:
        """All descendants in depth-first, sibling order."""
        node = self.nodes_by_id.get(item_id)
        if node is None:
            return []
        result: list[WorkItemRecord] = []
        stack = list(reversed(node.children))
        while stack:
            current = stack.pop()
            result.append(current.record)
            stack.extend(reversed(current.children))
        return result

    def root_epic(self, item_id: str) -> WorkItemRecord | None:
        """The epic at the top of an item's chain, if the chain ends in one."""
        record = self.items_by_id.get(item_id)
        if record is None:
            return None
        chain = self.ancestors(item_id)
        top = chain[-1] if chain else record
        return top if top.type == WorkItemType.EPIC else None

    def progress(self, item_id: str) -> ItemProgress | None:
        """Completion of the leaves under an item (or the item itself if a leaf)."""
        node = self.nodes_by_id.get(item_id)
        if node is None:
            return None
        total, completed = _leaf_counts(node)
        percentage = round(completed * 100 / total) if total else 0
        return ItemProgress(total=total, completed=completed, percentage=percentage)


def _leaf_counts(node: HierarchyNode) -> tuple[int, int]:
    if not node.children:
        return 1, int(node.record.status == WorkItemStatus.COMPLETED)
    total = completed = 0
    for child in node.children:
        t, c = _leaf_counts(child)
        total += t
        completed += c
    return total, completed
