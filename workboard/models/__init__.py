"""Workboard data models — all Pydantic v2, all frozen (immutable)."""

from workboard.models.events import RefreshSignal, WatchEvent, WatchEventKind
from workboard.models.snapshot import (
    HierarchyNode,
    ItemProgress,
    Snapshot,
    SnapshotWarning,
    WarningKind,
)
from workboard.models.work_items import (
    StatusChange,
    ValidationResult,
    ValidationTest,
    WorkItemDetail,
    WorkItemRecord,
    WorkItemStatus,
    WorkItemType,
)

__all__ = [
    # work items
    "WorkItemStatus",
    "WorkItemType",
    "StatusChange",
    "ValidationTest",
    "ValidationResult",
    "WorkItemRecord",
    "WorkItemDetail",
    # snapshot
    "WarningKind",
    "SnapshotWarning",
    "HierarchyNode",
    "ItemProgress",
    "Snapshot",
    # events
    "WatchEventKind",
    "WatchEvent",
    "RefreshSignal",
]
