"""Shared test fixtures for Workboard."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from workboard.config import BoardConfig
from workboard.core import identifiers
from workboard.core.watcher import DescriptorWatcher
from workboard.models.work_items import WorkItemRecord, WorkItemStatus

# (id, status, directory relative to the descriptor root)
SAMPLE_ITEMS: list[tuple[str, str, str]] = [
    ("epic-0001", "implementing", "epic-0001"),
    ("story-0001-0001", "ready", "epic-0001/story-0001-0001"),
    ("story-0001-0002", "completed", "epic-0001/story-0001-0002"),
    (
        "task-0001-0001-0001",
        "blocked",
        "epic-0001/story-0001-0001/task-0001-0001-0001",
    ),
    (
        "task-0001-0001-0002",
        "on-hold",
        "epic-0001/story-0001-0001/task-0001-0001-0002",
    ),
    ("epic-0002", "planned", "epic-0002"),
    # Its parent (segment path 0009) does not exist.
    ("story-0009-0001", "pending", "stray/story-0009-0001"),
]

SAMPLE_DOC = "# Story one\n\nSome *text* for the story."


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Provide a project directory (the parent of ``.avc``)."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def descriptor_root(project_root: Path) -> Path:
    """Provide an empty ``.avc/project`` descriptor tree."""
    root = project_root / ".avc" / "project"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def board_config(project_root: Path) -> BoardConfig:
    """Config pointing at the test project, with watching disabled."""
    return BoardConfig(
        project_root=project_root,
        watch_enabled=False,
        debounce_seconds=0.05,
    )


# ---------------------------------------------------------------------------
# Descriptor factories
# ---------------------------------------------------------------------------


@pytest.fixture
def write_item(descriptor_root: Path) -> Callable[..., Path]:
    """Factory fixture: write one ``work.json`` (plus optional bodies)."""

    def _factory(
        item_id: str,
        status: str = "planned",
        *,
        name: str | None = None,
        where: str | None = None,
        doc: str | None = None,
        context: str | None = None,
        **fields: Any,
    ) -> Path:
        directory = descriptor_root / (where or item_id)
        directory.mkdir(parents=True, exist_ok=True)
        data = {"id": item_id, "name": name or f"Item {item_id}", "status": status}
        data.update(fields)
        path = directory / "work.json"
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        if doc is not None:
            (directory / "doc.md").write_text(doc, encoding="utf-8")
        if context is not None:
            (directory / "context.md").write_text(context, encoding="utf-8")
        return path

    return _factory


@pytest.fixture
def sample_tree(write_item: Callable[..., Path], descriptor_root: Path) -> Path:
    """Write the standard two-epic tree with one orphan; returns the root."""
    for item_id, status, where in SAMPLE_ITEMS:
        extra: dict[str, Any] = {}
        if item_id == "story-0001-0001":
            extra["doc"] = SAMPLE_DOC
            extra["description"] = "First story of the first epic"
        write_item(item_id, status, where=where, **extra)
    return descriptor_root


@pytest.fixture
def make_record(tmp_path: Path) -> Callable[..., WorkItemRecord]:
    """Factory fixture: build a WorkItemRecord without touching the disk."""

    def _factory(
        item_id: str,
        status: str = "planned",
        *,
        name: str | None = None,
        where: str | None = None,
        **overrides: Any,
    ) -> WorkItemRecord:
        directory = tmp_path / "records" / (where or item_id)
        return WorkItemRecord(
            id=item_id,
            type=identifiers.item_type(item_id),
            name=name or f"Item {item_id}",
            status=WorkItemStatus.parse(status),
            raw_status=status,
            descriptor_path=directory / "work.json",
            doc_path=directory / "doc.md",
            context_path=directory / "context.md",
            parent_id=identifiers.parent_id(item_id),
            **overrides,
        )

    return _factory


@pytest.fixture
def sample_records(make_record: Callable[..., WorkItemRecord]) -> list[WorkItemRecord]:
    """Records matching SAMPLE_ITEMS, in scan order."""
    return [make_record(item_id, status, where=where) for item_id, status, where in SAMPLE_ITEMS]


# ---------------------------------------------------------------------------
# Watcher fakes
# ---------------------------------------------------------------------------


class FakeObserver:
    """Stands in for watchdog's Observer; exposes the scheduled handler."""

    def __init__(self) -> None:
        self.handler = None
        self.watched: list[tuple[str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.watched.append((path, recursive))

    def start(self):
        self.started = True

    def is_alive(self):
        return self.started and not self.stopped

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


@pytest.fixture
def fake_observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def fake_watcher_factory() -> Callable[[Path, asyncio.Queue], DescriptorWatcher]:
    """Coordinator watcher factory backed by a FakeObserver."""

    def _factory(root: Path, queue: asyncio.Queue) -> DescriptorWatcher:
        return DescriptorWatcher(
            root, queue, debounce_seconds=0.01, observer_factory=FakeObserver
        )

    return _factory
