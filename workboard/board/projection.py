"""BoardProjection — pure read-only views over one Snapshot.

The projection never stores state of its own and never touches the disk.
It is constructed around a published Snapshot and answers the query API's
questions: aggregate stats, flat or hierarchical listings, the column view,
and JSON-ready payloads for single items.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from workboard.board.columns import (
    STATUS_COLUMN_MAPPING,
    ColumnView,
    group_by_column,
)
from workboard.models.snapshot import HierarchyNode, Snapshot
from workboard.models.work_items import (
    WorkItemDetail,
    WorkItemRecord,
    WorkItemStatus,
    WorkItemType,
)


class BoardStats(BaseModel):
    """Aggregate counts over a whole Snapshot."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    by_type: dict[str, int] = {}
    by_status: dict[str, int] = {}
    warnings: int = 0


def compute_stats(snapshot: Snapshot) -> BoardStats:
    items = snapshot.items_by_id.values()
    by_type = Counter(item.type.value for item in items)
    by_status = Counter(item.raw_status for item in items)
    return BoardStats(
        total=len(snapshot.items_by_id),
        by_type=dict(sorted(by_type.items())),
        by_status=dict(sorted(by_status.items())),
        warnings=snapshot.warning_count,
    )


class BoardProjection:
    """Query layer over a single, immutable Snapshot.

    Parameters
    ----------
    snapshot:
        The Snapshot to project.  Callers take it from the Coordinator once
        per request so that every answer is consistent with itself.
    mapping:
        Status -> column mapping for the grouped view.
    """

    def __init__(
        self,
        snapshot: Snapshot,
        mapping: Mapping[str, Sequence[WorkItemStatus]] = STATUS_COLUMN_MAPPING,
    ) -> None:
        self.snapshot = snapshot
        self.mapping = mapping

    def stats(self) -> BoardStats:
        return compute_stats(self.snapshot)

    def grouped(self) -> ColumnView:
        return group_by_column(self.snapshot.items_by_id.values(), self.mapping)

    def list_items(
        self,
        *,
        types: Iterable[str] | None = None,
        statuses: Iterable[str] | None = None,
        search: str | None = None,
    ) -> list[WorkItemRecord]:
        """Flat, id-ordered listing with optional filters.

        ``statuses`` matches either the raw status string or the recognized
        status value (so ``unrecognized`` selects every unknown status).
        """
        wanted_types = _normalized(types)
        wanted_statuses = _normalized(statuses)
        needle = search.strip().lower() if search else ""

        result: list[WorkItemRecord] = []
        for item in self.snapshot.all_items():
            if wanted_types and item.type.value not in wanted_types:
                continue
            if wanted_statuses and not (
                item.raw_status.lower() in wanted_statuses
                or item.status.value in wanted_statuses
            ):
                continue
            if needle and not _matches(item, needle):
                continue
            result.append(item)
        return result

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def item_payload(
        self, record: WorkItemRecord, detail: WorkItemDetail | None = None
    ) -> dict[str, Any]:
        """JSON-ready view of one item, with ids instead of object links."""
        snapshot = self.snapshot
        node = snapshot.node(record.id)
        payload: dict[str, Any] = {
            "id": record.id,
            "name": record.name,
            "type": record.type.value,
            "status": record.raw_status,
            "status_kind": record.status.value,
            "description": record.description,
            "dependencies": sorted(record.dependencies),
            "metadata": record.metadata,
            "parent_id": node.parent_id if node else record.parent_id,
            "orphan": bool(node and node.orphan),
        }

        parent = snapshot.parent_of(record.id)
        if parent is not None:
            payload["parent_name"] = parent.name

        if node is not None and node.children:
            payload["children"] = [
                {
                    "id": child.record.id,
                    "name": child.record.name,
                    "type": child.record.type.value,
                    "status": child.record.raw_status,
                }
                for child in node.children
            ]

        if record.type != WorkItemType.EPIC:
            epic = snapshot.root_epic(record.id)
            if epic is not None:
                payload["epic_id"] = epic.id
                payload["epic_name"] = epic.name

        progress = snapshot.progress(record.id)
        if progress is not None:
            payload["progress"] = progress.model_dump()

        if detail is not None:
            payload["status_history"] = [
                change.model_dump() for change in record.status_history
            ]
            payload["validation"] = record.validation.model_dump(mode="json")
            payload["documentation"] = detail.documentation
            payload["context"] = detail.context

        return payload

    def tree_payload(self, node: HierarchyNode) -> dict[str, Any]:
        """Nested payload for one subtree."""
        payload = self.item_payload(node.record)
        payload["children"] = [self.tree_payload(child) for child in node.children]
        return payload

    def listing_payload(
        self, items: list[WorkItemRecord], *, hierarchical: bool = False
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "total": len(items),
            "roots": self.snapshot.root_ids,
            "warnings": [w.model_dump(mode="json") for w in self.snapshot.warnings],
        }
        if hierarchical:
            wanted = {item.id for item in items}
            payload["items"] = [
                self.tree_payload(root)
                for root in self.snapshot.roots
                if _subtree_contains(root, wanted)
            ]
        else:
            payload["items"] = [self.item_payload(item) for item in items]
        return payload

    def grouped_payload(self) -> dict[str, Any]:
        view = self.grouped()
        return {
            bucket.name: {
                "items": [self.item_payload(item) for item in bucket.items],
                "stats": bucket.stats.model_dump(),
            }
            for bucket in view.columns
        }


def _normalized(values: Iterable[str] | None) -> set[str]:
    if not values:
        return set()
    return {v.strip().lower() for v in values if v and v.strip()}


def _matches(item: WorkItemRecord, needle: str) -> bool:
    return (
        needle in item.name.lower()
        or needle in item.id.lower()
        or (item.description is not None and needle in item.description.lower())
    )


def _subtree_contains(node: HierarchyNode, wanted: set[str]) -> bool:
    if node.record.id in wanted:
        return True
    return any(_subtree_contains(child, wanted) for child in node.children)
