"""SyncCoordinator — owns the single published Snapshot.

The Coordinator wires the DescriptorScanner, WorkItemReader and
HierarchyBuilder into a rebuild pipeline, drives it at startup and after
every watcher event, and publishes each result by replacing one reference.

Rebuilds are always full: the dataset is small, a full rebuild is trivially
correct, and items that move between parents need no special handling.

Concurrency runs on a single asyncio loop:

- at most one rebuild runs at a time;
- a trigger that arrives while a rebuild is running only marks the
  Coordinator dirty, and exactly one follow-up rebuild runs after it;
- a rebuild in flight is never cancelled;
- readers always see the last fully built Snapshot.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from workboard.config import BoardConfig
from workboard.core.broadcaster import RefreshBroadcaster
from workboard.core.hierarchy import HierarchyBuilder
from workboard.core.reader import ParseError, WorkItemReader
from workboard.core.scanner import DescriptorScanner
from workboard.core.watcher import DescriptorWatcher
from workboard.models.events import WatchEvent, WatchEventKind
from workboard.models.snapshot import Snapshot, SnapshotWarning, WarningKind
from workboard.models.work_items import WorkItemDetail, WorkItemRecord

logger = logging.getLogger(__name__)

WatcherFactory = Callable[[Path, asyncio.Queue], DescriptorWatcher]


class ItemNotFoundError(KeyError):
    """Raised when a work item id is not in the published Snapshot."""


class SyncCoordinator:
    """Drives Scanner -> Reader -> Builder and publishes Snapshots.

    Parameters
    ----------
    config:
        Board configuration.  Uses env-driven defaults if not provided.
    scanner, reader, builder:
        Pipeline stages; built from ``config`` when omitted.
    broadcaster:
        Notified after every successful publish.
    watcher_factory:
        Builds the watcher for a root and event queue; replaceable in tests.
    """

    def __init__(
        self,
        config: BoardConfig | None = None,
        *,
        scanner: DescriptorScanner | None = None,
        reader: WorkItemReader | None = None,
        builder: HierarchyBuilder | None = None,
        broadcaster: RefreshBroadcaster | None = None,
        watcher_factory: WatcherFactory | None = None,
    ) -> None:
        self.config = config or BoardConfig()
        self.scanner = scanner or DescriptorScanner(
            self.config.descriptor_root, self.config.descriptor_name
        )
        self.reader = reader or WorkItemReader(
            self.config.doc_name, self.config.context_name
        )
        self.builder = builder or HierarchyBuilder()
        self.broadcaster = broadcaster or RefreshBroadcaster()
        self._watcher_factory = watcher_factory or self._default_watcher

        # Published state, replaced by assignment and never mutated
        self._snapshot = Snapshot()
        self._loaded = False
        self._generation = 0
        self.last_published: datetime | None = None

        # Rebuild coalescing
        self._rebuild_task: asyncio.Task[None] | None = None
        self._dirty = False
        self.rebuild_count = 0

        # Watching
        self._events: asyncio.Queue[WatchEvent] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._watcher: DescriptorWatcher | None = None
        self._watch_error: str | None = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        """The currently published Snapshot (empty before the first load)."""
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def watch_active(self) -> bool:
        return self._watcher is not None and self._watcher.active

    @property
    def watch_error(self) -> str | None:
        return self._watch_error

    @property
    def rebuilding(self) -> bool:
        return self._rebuild_task is not None and not self._rebuild_task.done()

    def load_detail(self, item_id: str) -> WorkItemDetail:
        """Lazily load doc/context bodies for one item of the current Snapshot."""
        record = self._snapshot.get(item_id)
        if record is None:
            raise ItemNotFoundError(item_id)
        return self.reader.load_detail(record)

    def status(self) -> dict[str, Any]:
        return {
            "loaded": self._loaded,
            "watching": self.watch_active,
            "watch_error": self._watch_error,
            "items": len(self._snapshot.items_by_id),
            "warnings": self._snapshot.warning_count,
            "generation": self._generation,
            "rebuilding": self.rebuilding,
            "listeners": self.broadcaster.listener_count,
            "last_published": self.last_published,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Snapshot:
        """Start watching, then build and publish the first Snapshot.

        The watcher starts first so that changes racing the baseline scan
        are captured; they mark the Coordinator dirty and cause exactly one
        follow-up rebuild.
        """
        logger.info("Loading work items from %s", self.config.descriptor_root)
        if self.config.watch_enabled:
            await self._start_watcher()
        await self.request_rebuild("startup")
        return self._snapshot

    async def stop(self) -> None:
        """Stop watching; waits for an in-flight rebuild instead of cancelling it."""
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None
        if self._rebuild_task is not None and not self._rebuild_task.done():
            await self._rebuild_task

    async def refresh(self) -> Snapshot:
        """Manual refresh: rebuild now and return the published Snapshot.

        Also retries the watcher if watching is enabled but not running, so
        a board that lost live updates can recover.
        """
        if self.config.watch_enabled and not self.watch_active:
            await self._start_watcher()
        await asyncio.shield(self.request_rebuild("manual refresh"))
        return self._snapshot

    # ------------------------------------------------------------------
    # Rebuild coalescing
    # ------------------------------------------------------------------

    def request_rebuild(self, reason: str = "requested") -> asyncio.Task[None]:
        """Trigger a rebuild, or mark dirty if one is already running.

        Returns the task running the current rebuild chain; awaiting it
        waits for any coalesced follow-up too.
        """
        if self._rebuild_task is not None and not self._rebuild_task.done():
            if not self._dirty:
                logger.debug("Rebuild in flight; deferring %s", reason)
            self._dirty = True
            return self._rebuild_task

        self._dirty = False
        self._rebuild_task = asyncio.get_running_loop().create_task(
            self._rebuild_chain(reason)
        )
        return self._rebuild_task

    async def _rebuild_chain(self, reason: str) -> None:
        while True:
            self._dirty = False
            await self._rebuild_once(reason)
            if not self._dirty:
                return
            reason = "coalesced changes"

    async def _rebuild_once(self, reason: str) -> None:
        self.rebuild_count += 1
        try:
            snapshot = await self._build_snapshot()
        except Exception:
            logger.exception(
                "Rebuild (%s) failed; generation %d stays published",
                reason,
                self._generation,
            )
            return
        self._publish(snapshot)
        logger.info(
            "Published generation %d (%s): %d items, %d roots, %d warnings",
            self._generation,
            reason,
            len(snapshot.items_by_id),
            len(snapshot.roots),
            snapshot.warning_count,
        )
        await self.broadcaster.broadcast_refresh(self._generation)

    async def _build_snapshot(self) -> Snapshot:
        """Scan, read and build, yielding to the loop after each file."""
        scan = self.scanner.scan()
        records: list[WorkItemRecord] = []
        errors: list[ParseError] = []
        for path in scan.paths:
            outcome = self.reader.read_or_error(path)
            if isinstance(outcome, ParseError):
                errors.append(outcome)
            else:
                records.append(outcome)
            await asyncio.sleep(0)
        return self.builder.build(
            records,
            scan_errors=scan.errors,
            parse_errors=errors,
            source_file_count=len(scan.paths),
        )

    def _publish(self, snapshot: Snapshot) -> None:
        self._generation += 1
        update: dict[str, Any] = {"generation": self._generation}
        if self._watch_error is not None:
            update["warnings"] = snapshot.warnings + (
                SnapshotWarning(
                    kind=WarningKind.WATCH_ERROR,
                    message=(
                        f"Live updates unavailable ({self._watch_error}); "
                        "use manual refresh"
                    ),
                ),
            )
        # Single reference swap: readers see the old or the new, never a mix.
        self._snapshot = snapshot.model_copy(update=update)
        self._loaded = True
        self.last_published = datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def _default_watcher(
        self, root: Path, queue: asyncio.Queue[WatchEvent]
    ) -> DescriptorWatcher:
        return DescriptorWatcher(
            root,
            queue,
            descriptor_name=self.config.descriptor_name,
            debounce_seconds=self.config.debounce_seconds,
        )

    async def _start_watcher(self) -> bool:
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None
        if self._events is None:
            self._events = asyncio.Queue()
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(
                self._consume_events()
            )
        watcher = self._watcher_factory(self.config.descriptor_root, self._events)
        if not await watcher.start():
            return False
        self._watcher = watcher
        if self._watch_error is not None:
            logger.info("File watching restored")
            self._watch_error = None
        return True

    async def _consume_events(self) -> None:
        assert self._events is not None
        while True:
            event = await self._events.get()
            await self.handle_event(event)

    async def handle_event(self, event: WatchEvent) -> None:
        """React to one semantic watcher event."""
        if event.kind == WatchEventKind.READY:
            logger.info("File watcher ready")
        elif event.kind == WatchEventKind.ERROR:
            logger.warning(
                "File watcher error: %s; live updates disabled until refresh",
                event.error,
            )
            self._watch_error = event.error or "unknown watch error"
            if self._watcher is not None:
                await self._watcher.stop()
                self._watcher = None
            # Republish so the degradation shows up in the Snapshot warnings.
            self.request_rebuild("watch error")
        else:
            logger.info("Work item %s: %s", event.kind.value, event.path)
            self.request_rebuild(f"{event.kind.value} {event.path}")
