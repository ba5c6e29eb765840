"""Descriptor watcher — debounced semantic events from filesystem changes.

The ``watchdog`` observer delivers raw notifications on its own thread.  The
watcher hands each one to the asyncio loop with ``call_soon_threadsafe`` and
does everything else there: filtering, classification and debouncing.  The
resulting ``WatchEvent`` objects are put on an ``asyncio.Queue`` that the
Coordinator consumes.

Debouncing is trailing-edge and per path.  Editors and agent tools often
emit several raw events per logical write (truncate + write, or
delete + rename for atomic saves); each raw event restarts the path's timer
and a single semantic event is emitted once the path has been quiet for the
window.  The burst is classified from its first and last raw kinds:

========================  =========
burst                     semantic
========================  =========
ends with a delete        deleted
starts with a create      added
anything else             changed
========================  =========

A watch failure is reported as an ``error`` event and never raised: the
watcher is an optimization, and the board keeps working on manual refresh.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from workboard.models.events import WatchEvent, WatchEventKind

logger = logging.getLogger(__name__)


class WatchError(RuntimeError):
    """Raised when the underlying watch mechanism cannot be started."""


class _PendingPath:
    __slots__ = ("first", "last", "handle")

    def __init__(self, first: str) -> None:
        self.first = first
        self.last = first
        self.handle: asyncio.TimerHandle | None = None


class EventDebouncer:
    """Collapses bursts of raw events for the same path into one event.

    State is explicit: one pending entry (first kind, last kind, timer)
    per path.  Must be driven from the event loop thread.

    Parameters
    ----------
    window:
        Quiet period, in seconds, after which a path's burst is emitted.
    emit:
        Called with each semantic ``WatchEvent``.
    """

    def __init__(self, window: float, emit: Callable[[WatchEvent], None]) -> None:
        self.window = window
        self._emit = emit
        self._pending: dict[Path, _PendingPath] = {}

    @property
    def pending_paths(self) -> set[Path]:
        return set(self._pending)

    def push(self, raw_kind: str, path: Path) -> None:
        """Record one raw event and (re)start the path's timer."""
        entry = self._pending.get(path)
        if entry is None:
            entry = self._pending[path] = _PendingPath(raw_kind)
        else:
            entry.last = raw_kind
            if entry.handle is not None:
                entry.handle.cancel()
        loop = asyncio.get_running_loop()
        entry.handle = loop.call_later(self.window, self._fire, path)

    def flush(self) -> None:
        """Emit every pending burst now."""
        for path in list(self._pending):
            self._fire(path)

    def cancel(self) -> None:
        """Drop every pending burst without emitting."""
        for entry in self._pending.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._pending.clear()

    def _fire(self, path: Path) -> None:
        entry = self._pending.pop(path, None)
        if entry is None:
            return
        if entry.handle is not None:
            entry.handle.cancel()
        kind = classify_burst(entry.first, entry.last)
        logger.debug("Debounced %s -> %s for %s", entry.first, kind.value, path)
        self._emit(WatchEvent(kind=kind, path=path))


def classify_burst(first: str, last: str) -> WatchEventKind:
    if last == EVENT_TYPE_DELETED:
        return WatchEventKind.DELETED
    if first == EVENT_TYPE_CREATED:
        return WatchEventKind.ADDED
    return WatchEventKind.CHANGED


class _ForwardingHandler(FileSystemEventHandler):
    """watchdog handler that forwards raw events to the loop thread."""

    def __init__(self, forward: Callable[[FileSystemEvent], None]) -> None:
        super().__init__()
        self._forward = forward

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._forward(event)


class DescriptorWatcher:
    """Watches the descriptor tree and queues semantic ``WatchEvent`` objects.

    Parameters
    ----------
    root:
        Directory to watch recursively.
    queue:
        Destination for semantic events (consumed by the Coordinator).
    descriptor_name:
        Only files with this name produce events.
    debounce_seconds:
        Per-path quiet window.
    observer_factory:
        Builds the watchdog observer; replaceable in tests.
    """

    def __init__(
        self,
        root: Path,
        queue: asyncio.Queue[WatchEvent],
        *,
        descriptor_name: str = "work.json",
        debounce_seconds: float = 0.1,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self.root = Path(root)
        self.descriptor_name = descriptor_name
        self._queue = queue
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._debouncer = EventDebouncer(debounce_seconds, self._queue.put_nowait)

    @property
    def active(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Start watching; emits ``ready`` on success or ``error`` on failure.

        Returns whether the watcher is running.
        """
        if self._observer is not None:
            logger.warning("Watcher for %s already started", self.root)
            return self.active

        self._loop = asyncio.get_running_loop()
        try:
            self._observer = self._start_observer()
        except WatchError as exc:
            logger.warning("File watching unavailable: %s", exc)
            self._queue.put_nowait(WatchEvent(kind=WatchEventKind.ERROR, error=str(exc)))
            return False

        logger.info("Watching %s for %s changes", self.root, self.descriptor_name)
        self._queue.put_nowait(WatchEvent(kind=WatchEventKind.READY))
        return True

    def _start_observer(self) -> Any:
        if not self.root.is_dir():
            raise WatchError(f"descriptor root {self.root} does not exist")
        observer = self._observer_factory()
        try:
            observer.schedule(
                _ForwardingHandler(self._forward), str(self.root), recursive=True
            )
            observer.start()
        except Exception as exc:  # noqa: BLE001
            raise WatchError(f"cannot watch {self.root}: {exc}") from exc
        return observer

    async def stop(self) -> None:
        """Stop the observer and discard pending bursts.

        The observer thread is joined from a worker thread so the event loop
        keeps running while it winds down.
        """
        self._debouncer.cancel()
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        await asyncio.to_thread(observer.join, 2.0)
        logger.info("Stopped watching %s", self.root)

    # ------------------------------------------------------------------
    # Raw event intake
    # ------------------------------------------------------------------

    def _forward(self, event: FileSystemEvent) -> None:
        """Runs on the observer thread: hop onto the loop and return."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._on_raw_event, event)
        except RuntimeError:
            # Loop shut down between the check and the call.
            logger.debug("Dropped raw event %s after loop shutdown", event)

    def _on_raw_event(self, event: FileSystemEvent) -> None:
        """Runs on the loop: filter, split moves, feed the debouncer."""
        try:
            for raw_kind, path in self._raw_changes(event):
                self._debouncer.push(raw_kind, path)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Watch dispatch failed")
            self._queue.put_nowait(WatchEvent(kind=WatchEventKind.ERROR, error=str(exc)))

    def _raw_changes(self, event: FileSystemEvent) -> list[tuple[str, Path]]:
        kind = event.event_type
        if kind not in (
            EVENT_TYPE_CREATED,
            EVENT_TYPE_MODIFIED,
            EVENT_TYPE_DELETED,
            EVENT_TYPE_MOVED,
        ):
            return []

        src = Path(_as_str(event.src_path))
        if event.is_directory:
            # Directory mtime bumps accompany every child change.
            if kind == EVENT_TYPE_MODIFIED:
                return []
            if kind == EVENT_TYPE_MOVED:
                dest = Path(_as_str(event.dest_path))
                return [(EVENT_TYPE_DELETED, src), (EVENT_TYPE_CREATED, dest)]
            return [(kind, src)]

        changes: list[tuple[str, Path]] = []
        if kind == EVENT_TYPE_MOVED:
            dest = Path(_as_str(event.dest_path))
            if self._is_descriptor(src):
                changes.append((EVENT_TYPE_DELETED, src))
            if self._is_descriptor(dest):
                changes.append((EVENT_TYPE_CREATED, dest))
            return changes
        if self._is_descriptor(src):
            changes.append((kind, src))
        return changes

    def _is_descriptor(self, path: Path) -> bool:
        return path.name == self.descriptor_name


def _as_str(path: str | bytes) -> str:
    return path.decode() if isinstance(path, bytes) else path
