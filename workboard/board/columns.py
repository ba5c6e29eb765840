"""Status -> column grouping for the kanban board.

Pure functions: the same items and the same mapping always produce the same
grouping.  Items inside a column are ordered by id.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from workboard.models.work_items import WorkItemRecord, WorkItemStatus

BACKLOG = "Backlog"
READY = "Ready"
IN_PROGRESS = "In Progress"
REVIEW = "Review"
DONE = "Done"
BLOCKED = "Blocked"
OTHER = "Other"

FALLBACK_COLUMN = OTHER

# Column name -> statuses shown in it.  Insertion order is board order.
STATUS_COLUMN_MAPPING: dict[str, tuple[WorkItemStatus, ...]] = {
    BACKLOG: (WorkItemStatus.PLANNED, WorkItemStatus.PENDING),
    READY: (WorkItemStatus.READY,),
    IN_PROGRESS: (WorkItemStatus.IMPLEMENTING, WorkItemStatus.FEEDBACK),
    REVIEW: (WorkItemStatus.IMPLEMENTED, WorkItemStatus.TESTING),
    DONE: (WorkItemStatus.COMPLETED,),
    BLOCKED: (WorkItemStatus.BLOCKED,),
    OTHER: (WorkItemStatus.UNRECOGNIZED,),
}

COLUMN_ORDER: list[str] = list(STATUS_COLUMN_MAPPING)


class StatusMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    color: str


STATUS_METADATA: dict[WorkItemStatus, StatusMetadata] = {
    WorkItemStatus.PLANNED: StatusMetadata(label="Planned", color="grey62"),
    WorkItemStatus.PENDING: StatusMetadata(label="Pending", color="slate_blue1"),
    WorkItemStatus.READY: StatusMetadata(label="Ready", color="blue"),
    WorkItemStatus.IMPLEMENTING: StatusMetadata(label="Implementing", color="yellow"),
    WorkItemStatus.FEEDBACK: StatusMetadata(label="Feedback", color="orange1"),
    WorkItemStatus.IMPLEMENTED: StatusMetadata(label="Implemented", color="purple"),
    WorkItemStatus.TESTING: StatusMetadata(label="Testing", color="violet"),
    WorkItemStatus.COMPLETED: StatusMetadata(label="Completed", color="green"),
    WorkItemStatus.BLOCKED: StatusMetadata(label="Blocked", color="red"),
    WorkItemStatus.UNRECOGNIZED: StatusMetadata(label="Unrecognized", color="magenta"),
}


class ColumnStats(BaseModel):
    """Item count of one column, split by raw status string."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    by_status: dict[str, int] = {}


class ColumnBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    statuses: tuple[WorkItemStatus, ...] = ()
    items: tuple[WorkItemRecord, ...] = ()
    stats: ColumnStats = ColumnStats()

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]


class ColumnView(BaseModel):
    """All columns of the board in display order."""

    model_config = ConfigDict(frozen=True)

    columns: tuple[ColumnBucket, ...] = ()

    def column(self, name: str) -> ColumnBucket:
        for bucket in self.columns:
            if bucket.name == name:
                return bucket
        raise KeyError(name)

    @property
    def names(self) -> list[str]:
        return [bucket.name for bucket in self.columns]

    def item_ids(self) -> dict[str, list[str]]:
        """Column name -> ids, for compact comparisons and display."""
        return {bucket.name: bucket.item_ids for bucket in self.columns}


def column_for_status(
    status: WorkItemStatus | str,
    mapping: Mapping[str, Sequence[WorkItemStatus]] = STATUS_COLUMN_MAPPING,
) -> str:
    """The column a status belongs to; unmapped statuses go to the fallback."""
    if not isinstance(status, WorkItemStatus):
        status = WorkItemStatus.parse(status)
    for column, statuses in mapping.items():
        if status in statuses:
            return column
    return FALLBACK_COLUMN


def column_stats(items: Iterable[WorkItemRecord]) -> ColumnStats:
    items = list(items)
    counts = Counter(item.raw_status for item in items)
    return ColumnStats(total=len(items), by_status=dict(sorted(counts.items())))


def group_by_column(
    items: Iterable[WorkItemRecord],
    mapping: Mapping[str, Sequence[WorkItemStatus]] = STATUS_COLUMN_MAPPING,
) -> ColumnView:
    """Bucket items into the mapping's columns (plus the fallback column)."""
    names = list(mapping)
    if FALLBACK_COLUMN not in names:
        names.append(FALLBACK_COLUMN)
    grouped: dict[str, list[WorkItemRecord]] = {name: [] for name in names}

    for item in sorted(items, key=lambda i: i.id):
        grouped[column_for_status(item.status, mapping)].append(item)

    return ColumnView(
        columns=tuple(
            ColumnBucket(
                name=name,
                statuses=tuple(mapping.get(name, ())),
                items=tuple(grouped[name]),
                stats=column_stats(grouped[name]),
            )
            for name in names
        )
    )
