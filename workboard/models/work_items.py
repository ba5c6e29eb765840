"""Work-item records — the validated form of one ``work.json`` descriptor.

Everything downstream of the Reader sees only these models.  The raw JSON
is decoded once at the parse boundary; a status string the board does not
know is kept verbatim in ``raw_status`` and tagged ``UNRECOGNIZED``.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class WorkItemStatus(str, Enum):
    """Lifecycle states written by the external agent tooling.

    planned/pending -> ready -> implementing/feedback -> implemented/testing
    -> completed, with ``blocked`` reachable from any non-terminal state.
    The board never enforces these transitions.
    """

    PLANNED = "planned"
    PENDING = "pending"
    READY = "ready"
    IMPLEMENTING = "implementing"
    FEEDBACK = "feedback"
    IMPLEMENTED = "implemented"
    TESTING = "testing"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, raw: str) -> WorkItemStatus:
        """Map a raw status string to a member, falling back to UNRECOGNIZED."""
        normalized = raw.strip().lower()
        if normalized == cls.UNRECOGNIZED.value:
            return cls.UNRECOGNIZED
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNRECOGNIZED


class WorkItemType(str, Enum):
    """Item kind, derived from the number of hierarchical id segments."""

    PROJECT = "project"
    EPIC = "epic"
    STORY = "story"
    TASK = "task"
    SUBTASK = "subtask"
    UNKNOWN = "unknown"


class StatusChange(BaseModel):
    """One entry of a descriptor's ``statuses`` history."""

    model_config = ConfigDict(frozen=True)

    status: str
    timestamp: str | None = None


class ValidationTest(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    passed: bool = False
    message: str | None = None


class ValidationResult(BaseModel):
    """The ``validation`` block: overall status, individual tests, pass flag."""

    model_config = ConfigDict(frozen=True)

    status: str | None = None
    tests: tuple[ValidationTest, ...] = ()
    passed: bool = False


class WorkItemRecord(BaseModel):
    """Parsed state of a single descriptor file.

    ``parent_id`` is the id with its last hierarchical segment removed
    (``None`` for projects and epics).  It is derived, never read from disk.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: WorkItemType
    name: str
    status: WorkItemStatus
    raw_status: str
    description: str | None = None
    dependencies: frozenset[str] = frozenset()
    status_history: tuple[StatusChange, ...] = ()
    validation: ValidationResult = ValidationResult()
    metadata: dict[str, Any] = {}
    descriptor_path: Path
    doc_path: Path
    context_path: Path
    parent_id: str | None = None

    @property
    def is_recognized(self) -> bool:
        return self.status is not WorkItemStatus.UNRECOGNIZED


class WorkItemDetail(BaseModel):
    """A record plus its free-text bodies, loaded only on explicit request."""

    model_config = ConfigDict(frozen=True)

    record: WorkItemRecord
    documentation: str | None = None
    context: str | None = None
