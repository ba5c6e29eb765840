"""HierarchyBuilder — assembles a Snapshot from validated records.

Parent/child links are inferred from the hierarchical ids: an item's parent
is the item whose id is its own minus the last segment.  The builder performs
no disk I/O and never mutates its inputs; it returns a fully built Snapshot.

Anomalies are surfaced, not hidden:

- an item whose parent is missing becomes a root-level *orphan* and is
  flagged with a warning;
- two descriptors sharing an id are both flagged; the later one is shown.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from workboard.core import identifiers
from workboard.core.reader import ParseError
from workboard.core.scanner import ScanError
from workboard.models.snapshot import (
    HierarchyNode,
    Snapshot,
    SnapshotWarning,
    WarningKind,
)
from workboard.models.work_items import WorkItemRecord

logger = logging.getLogger(__name__)


class HierarchyBuilder:
    """Builds immutable Snapshots from records (pure, stateless)."""

    def build(
        self,
        records: Iterable[WorkItemRecord],
        *,
        scan_errors: Iterable[ScanError] = (),
        parse_errors: Iterable[ParseError] = (),
        source_file_count: int | None = None,
    ) -> Snapshot:
        """Index, link and freeze records into a Snapshot.

        Parameters
        ----------
        records:
            Validated records, in scan order.  On duplicate ids the last
            one wins for display.
        scan_errors, parse_errors:
            Upstream failures folded into the Snapshot's warnings.
        source_file_count:
            Number of descriptor files the records came from.
        """
        records = list(records)
        items: dict[str, WorkItemRecord] = {}
        paths_by_id: dict[str, list[Path]] = defaultdict(list)
        for record in records:
            items[record.id] = record
            paths_by_id[record.id].append(record.descriptor_path)

        ids_by_key: dict[tuple[str, ...], list[str]] = defaultdict(list)
        for item_id in items:
            ids_by_key[identifiers.hierarchy_key(item_id)].append(item_id)

        parents: dict[str, str | None] = {}
        orphans: set[str] = set()
        children: dict[str, list[str]] = defaultdict(list)
        for item_id, record in items.items():
            parent = self._resolve_parent(record, items, ids_by_key)
            parents[item_id] = parent
            if parent is not None:
                children[parent].append(item_id)
            elif record.parent_id is not None:
                orphans.add(item_id)

        # Parents are strictly shallower than their children, so building
        # deepest-first gives every node its complete children tuple.
        nodes: dict[str, HierarchyNode] = {}
        for item_id in sorted(
            items, key=lambda i: identifiers.parse_id(i).depth, reverse=True
        ):
            nodes[item_id] = HierarchyNode(
                record=items[item_id],
                children=tuple(nodes[c] for c in sorted(children.get(item_id, ()))),
                parent_id=parents[item_id],
                orphan=item_id in orphans,
            )

        roots = tuple(nodes[i] for i in sorted(i for i, p in parents.items() if p is None))

        warnings: list[SnapshotWarning] = []
        warnings.extend(
            SnapshotWarning(
                kind=WarningKind.SCAN_ERROR,
                message=f"Could not scan {err.path}: {err.reason}",
                path=err.path,
            )
            for err in scan_errors
        )
        warnings.extend(
            SnapshotWarning(
                kind=WarningKind.PARSE_ERROR,
                message=f"Could not load {err.path}: {err.reason}",
                path=err.path,
            )
            for err in parse_errors
        )
        for item_id in sorted(paths_by_id):
            paths = paths_by_id[item_id]
            if len(paths) > 1:
                logger.warning(
                    "Duplicate work item id %s in %d descriptors", item_id, len(paths)
                )
                warnings.append(
                    SnapshotWarning(
                        kind=WarningKind.DUPLICATE_ID,
                        message=(
                            f"Work item id {item_id} is defined by {len(paths)} "
                            f"descriptors; showing {items[item_id].descriptor_path}"
                        ),
                        path=items[item_id].descriptor_path,
                        item_id=item_id,
                        related_paths=tuple(paths),
                    )
                )
        for item_id in sorted(orphans):
            record = items[item_id]
            logger.warning(
                "Orphaned work item: %s (parent %s not found)", item_id, record.parent_id
            )
            warnings.append(
                SnapshotWarning(
                    kind=WarningKind.ORPHAN,
                    message=f"Parent {record.parent_id} of {item_id} not found",
                    path=record.descriptor_path,
                    item_id=item_id,
                )
            )

        return Snapshot(
            items_by_id=items,
            nodes_by_id=nodes,
            roots=roots,
            warnings=tuple(warnings),
            source_file_count=(
                len(records) if source_file_count is None else source_file_count
            ),
        )

    @staticmethod
    def _resolve_parent(
        record: WorkItemRecord,
        items: dict[str, WorkItemRecord],
        ids_by_key: dict[tuple[str, ...], list[str]],
    ) -> str | None:
        """Find the parent id: literal id first, then the bare segment path."""
        if record.parent_id is None:
            return None
        if record.parent_id in items:
            return record.parent_id
        key = identifiers.parent_key(record.id)
        candidates = sorted(ids_by_key.get(key, ())) if key is not None else []
        return candidates[0] if candidates else None
