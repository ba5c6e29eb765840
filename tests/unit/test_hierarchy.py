"""Tests for HierarchyBuilder and the Snapshot it produces.

Verifies that:
1. Parents are inferred from ids, including across differing prefixes.
2. Orphans become flagged roots; duplicate ids are flagged.
3. Builds are deterministic regardless of input order.
4. Every node is reachable from exactly one root.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from pathlib import Path

from workboard.core.hierarchy import HierarchyBuilder
from workboard.core.reader import ParseError
from workboard.core.scanner import ScanError
from workboard.models.snapshot import Snapshot, WarningKind
from workboard.models.work_items import WorkItemRecord


def _walk_ids(snapshot: Snapshot) -> list[str]:
    seen: list[str] = []
    stack = list(snapshot.roots)
    while stack:
        node = stack.pop()
        seen.append(node.id)
        stack.extend(node.children)
    return seen


# ---------------------------------------------------------------------------
# Test: Structure
# ---------------------------------------------------------------------------


class TestStructure:
    """The sample tree links up as expected."""

    def test_roots_and_children(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)

        assert snapshot.root_ids == ["epic-0001", "epic-0002", "story-0009-0001"]
        assert snapshot.node("epic-0001").child_ids == [
            "story-0001-0001",
            "story-0001-0002",
        ]
        assert snapshot.node("story-0001-0001").child_ids == [
            "task-0001-0001-0001",
            "task-0001-0001-0002",
        ]
        assert snapshot.node("epic-0002").children == ()

    def test_parent_matched_by_segment_path(self, make_record: Callable[..., WorkItemRecord]):
        """story-0001-0002 belongs to epic-0001 even though story-0001 is absent."""
        snapshot = HierarchyBuilder().build(
            [make_record("epic-0001"), make_record("story-0001-0002")]
        )
        assert snapshot.node("story-0001-0002").parent_id == "epic-0001"
        assert snapshot.parent_of("story-0001-0002").id == "epic-0001"
        assert snapshot.orphans == []

    def test_literal_parent_wins(self, make_record: Callable[..., WorkItemRecord]):
        snapshot = HierarchyBuilder().build(
            [
                make_record("epic-0001"),
                make_record("context-0001"),
                make_record("context-0001-0002"),
            ]
        )
        assert snapshot.node("context-0001-0002").parent_id == "context-0001"

    def test_every_node_reachable_once(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)
        reached = _walk_ids(snapshot)
        assert sorted(reached) == sorted(snapshot.items_by_id)
        assert len(reached) == len(set(reached))

    def test_parent_links_agree_with_children(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)
        for item_id, node in snapshot.nodes_by_id.items():
            if node.parent_id is None:
                assert item_id in snapshot.root_ids
            else:
                assert item_id in snapshot.node(node.parent_id).child_ids

    def test_empty_input(self):
        snapshot = HierarchyBuilder().build([])
        assert snapshot.is_empty
        assert snapshot.roots == ()
        assert snapshot.warnings == ()


# ---------------------------------------------------------------------------
# Test: Anomalies
# ---------------------------------------------------------------------------


class TestAnomalies:
    """Orphans and duplicate ids are surfaced, never dropped."""

    def test_orphan_becomes_flagged_root(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)

        orphan = snapshot.node("story-0009-0001")
        assert orphan.orphan is True
        assert orphan.parent_id is None
        assert [n.id for n in snapshot.orphans] == ["story-0009-0001"]

        warnings = snapshot.warnings_of(WarningKind.ORPHAN)
        assert len(warnings) == 1
        assert warnings[0].item_id == "story-0009-0001"

    def test_epics_are_not_orphans(self, make_record: Callable[..., WorkItemRecord]):
        snapshot = HierarchyBuilder().build([make_record("epic-0003"), make_record("project")])
        assert snapshot.orphans == []
        assert snapshot.warnings == ()

    def test_duplicate_id_last_wins(self, make_record: Callable[..., WorkItemRecord]):
        first = make_record("epic-0001", "planned", where="a/epic-0001")
        second = make_record("epic-0001", "ready", where="b/epic-0001")

        snapshot = HierarchyBuilder().build([first, second])

        assert len(snapshot.items_by_id) == 1
        assert snapshot.get("epic-0001").raw_status == "ready"
        (warning,) = snapshot.warnings_of(WarningKind.DUPLICATE_ID)
        assert warning.item_id == "epic-0001"
        assert warning.related_paths == (first.descriptor_path, second.descriptor_path)

    def test_upstream_errors_become_warnings(
        self, sample_records: list[WorkItemRecord], tmp_path: Path
    ):
        snapshot = HierarchyBuilder().build(
            sample_records,
            scan_errors=[ScanError(path=tmp_path / "locked", reason="Permission denied")],
            parse_errors=[ParseError(path=tmp_path / "bad.json", reason="invalid JSON")],
            source_file_count=len(sample_records) + 1,
        )
        assert [w.kind for w in snapshot.warnings] == [
            WarningKind.SCAN_ERROR,
            WarningKind.PARSE_ERROR,
            WarningKind.ORPHAN,
        ]
        assert snapshot.source_file_count == len(sample_records) + 1


# ---------------------------------------------------------------------------
# Test: Determinism
# ---------------------------------------------------------------------------


class TestDeterminism:
    def test_same_input_same_structure(self, sample_records: list[WorkItemRecord]):
        builder = HierarchyBuilder()
        first = builder.build(sample_records)
        second = builder.build(sample_records)
        assert first.root_ids == second.root_ids
        assert first.nodes_by_id == second.nodes_by_id
        assert first.warnings == second.warnings

    def test_input_order_does_not_matter(self, sample_records: list[WorkItemRecord]):
        shuffled = list(sample_records)
        random.Random(7).shuffle(shuffled)
        ordered = HierarchyBuilder().build(sample_records)
        other = HierarchyBuilder().build(shuffled)
        assert ordered.root_ids == other.root_ids
        assert ordered.nodes_by_id == other.nodes_by_id


# ---------------------------------------------------------------------------
# Test: Snapshot traversal helpers
# ---------------------------------------------------------------------------


class TestSnapshotTraversal:
    def test_ancestors(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)
        assert [r.id for r in snapshot.ancestors("task-0001-0001-0001")] == [
            "story-0001-0001",
            "epic-0001",
        ]
        assert snapshot.ancestors("epic-0001") == []

    def test_descendants_depth_first(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)
        assert [r.id for r in snapshot.descendants("epic-0001")] == [
            "story-0001-0001",
            "task-0001-0001-0001",
            "task-0001-0001-0002",
            "story-0001-0002",
        ]
        assert snapshot.descendants("missing") == []

    def test_root_epic(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)
        assert snapshot.root_epic("task-0001-0001-0002").id == "epic-0001"
        assert snapshot.root_epic("story-0009-0001") is None

    def test_progress_counts_completed_leaves(self, sample_records: list[WorkItemRecord]):
        snapshot = HierarchyBuilder().build(sample_records)
        progress = snapshot.progress("epic-0001")
        assert (progress.total, progress.completed, progress.percentage) == (3, 1, 33)
        leaf = snapshot.progress("story-0001-0002")
        assert (leaf.total, leaf.completed, leaf.percentage) == (1, 1, 100)
        assert snapshot.progress("missing") is None
