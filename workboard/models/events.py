"""Watcher and broadcast event models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class WatchEventKind(str, Enum):
    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"
    READY = "ready"
    ERROR = "error"


class WatchEvent(BaseModel):
    """A semantic filesystem event, already debounced.

    ``path`` is set for added/changed/deleted; ``error`` for ERROR events.
    """

    model_config = ConfigDict(frozen=True)

    kind: WatchEventKind
    path: Path | None = None
    error: str | None = None

    @property
    def is_change(self) -> bool:
        return self.kind in (
            WatchEventKind.ADDED,
            WatchEventKind.CHANGED,
            WatchEventKind.DELETED,
        )


class RefreshSignal(BaseModel):
    """Payload pushed to real-time listeners after each publish.

    Carries no diff: listeners re-fetch through the query API.
    """

    model_config = ConfigDict(frozen=True)

    type: str = "refresh"
    generation: int
    message: str = "Work items updated, please refresh"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
