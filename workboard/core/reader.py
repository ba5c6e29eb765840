"""Work-item reader — decodes descriptor files into validated records.

Each ``work.json`` is parsed and validated at this boundary; downstream
components only ever see ``WorkItemRecord``.  A malformed file becomes a
``ParseError`` record in the batch result and never aborts the batch.

Free-text bodies (``doc.md``, ``context.md``) are not touched during bulk
reads.  They are loaded through ``load_detail`` only when a caller asks for
one item's full detail.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    StringConstraints,
    ValidationError,
    field_validator,
)

from workboard.core import identifiers
from workboard.models.work_items import (
    StatusChange,
    ValidationResult,
    ValidationTest,
    WorkItemDetail,
    WorkItemRecord,
    WorkItemStatus,
)

logger = logging.getLogger(__name__)

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class DescriptorError(ValueError):
    """Raised when a single descriptor cannot be decoded into a record."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ParseError(BaseModel):
    """A descriptor that was excluded from the snapshot, and why."""

    model_config = ConfigDict(frozen=True)

    path: Path
    reason: str


class ReadResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: tuple[WorkItemRecord, ...] = ()
    errors: tuple[ParseError, ...] = ()


# ---------------------------------------------------------------------------
# Raw descriptor schema
# ---------------------------------------------------------------------------


def _text(value: Any) -> Any:
    """Numbers and booleans written where text is expected become strings."""
    if isinstance(value, (int, float, bool)):
        return str(value)
    return value


def _text_fields(entry: Any, *keys: str) -> Any:
    if isinstance(entry, dict):
        return {k: _text(v) if k in keys else v for k, v in entry.items()}
    return entry


class _RawValidation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str | None = None
    tests: list[ValidationTest] = []
    passed: bool | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _text_status(cls, value: Any) -> Any:
        return _text(value)

    @field_validator("tests", mode="before")
    @classmethod
    def _named_tests(cls, value: Any) -> Any:
        # Tests may be listed as bare names.
        if isinstance(value, list):
            return [
                {"name": t}
                if isinstance(t, str)
                else _text_fields(t, "name", "message")
                for t in value
            ]
        return value


class _RawDescriptor(BaseModel):
    """Shape of ``work.json`` as written by the agent tooling."""

    model_config = ConfigDict(extra="ignore")

    id: RequiredText
    name: RequiredText
    status: RequiredText
    description: str | None = None
    dependencies: list[str] = []
    statuses: list[StatusChange] = []
    validation: _RawValidation | None = None
    metadata: dict[str, Any] = {}

    @field_validator("description", mode="before")
    @classmethod
    def _text_description(cls, value: Any) -> Any:
        return _text(value)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _null_dependencies(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("statuses", mode="before")
    @classmethod
    def _bare_statuses(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [
                {"status": s}
                if isinstance(s, str)
                else _text_fields(s, "status", "timestamp")
                for s in value
            ]
        return value


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


class WorkItemReader:
    """Parses descriptor files into ``WorkItemRecord`` instances.

    Parameters
    ----------
    doc_name:
        Sibling file holding the item's documentation body.
    context_name:
        Sibling file holding the item's context body.
    """

    def __init__(self, doc_name: str = "doc.md", context_name: str = "context.md") -> None:
        self.doc_name = doc_name
        self.context_name = context_name

    # ------------------------------------------------------------------
    # Bulk reads
    # ------------------------------------------------------------------

    def read(self, path: Path) -> WorkItemRecord:
        """Decode one descriptor.

        Raises
        ------
        DescriptorError
            If the file is unreadable, not JSON, or misses required fields.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DescriptorError(path, f"unreadable: {exc}") from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DescriptorError(path, f"invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise DescriptorError(
                path, f"descriptor must be a JSON object, got {type(data).__name__}"
            )

        try:
            raw = _RawDescriptor.model_validate(data)
        except ValidationError as exc:
            raise DescriptorError(path, _format_validation_error(exc)) from exc

        return self._to_record(path, raw)

    def read_or_error(self, path: Path) -> WorkItemRecord | ParseError:
        """Decode one descriptor, returning a ``ParseError`` instead of raising."""
        try:
            return self.read(path)
        except DescriptorError as exc:
            logger.warning("Skipping descriptor %s: %s", exc.path, exc.reason)
            return ParseError(path=exc.path, reason=exc.reason)

    def read_many(self, paths: list[Path] | tuple[Path, ...]) -> ReadResult:
        """Decode a batch; failures are collected, never raised."""
        records: list[WorkItemRecord] = []
        errors: list[ParseError] = []
        for path in paths:
            outcome = self.read_or_error(path)
            if isinstance(outcome, ParseError):
                errors.append(outcome)
            else:
                records.append(outcome)
        return ReadResult(records=tuple(records), errors=tuple(errors))

    def _to_record(self, path: Path, raw: _RawDescriptor) -> WorkItemRecord:
        status = WorkItemStatus.parse(raw.status)
        if status is WorkItemStatus.UNRECOGNIZED:
            logger.debug("Unrecognized status %r in %s", raw.status, path)

        validation = ValidationResult()
        if raw.validation is not None:
            passed = raw.validation.passed
            if passed is None:
                passed = bool(raw.validation.tests) and all(
                    t.passed for t in raw.validation.tests
                )
            validation = ValidationResult(
                status=raw.validation.status,
                tests=tuple(raw.validation.tests),
                passed=passed,
            )

        directory = path.parent
        return WorkItemRecord(
            id=raw.id,
            type=identifiers.item_type(raw.id),
            name=raw.name,
            status=status,
            raw_status=raw.status,
            description=raw.description,
            dependencies=frozenset(raw.dependencies),
            status_history=tuple(raw.statuses),
            validation=validation,
            metadata=raw.metadata,
            descriptor_path=path,
            doc_path=directory / self.doc_name,
            context_path=directory / self.context_name,
            parent_id=identifiers.parent_id(raw.id),
        )

    # ------------------------------------------------------------------
    # On-demand detail
    # ------------------------------------------------------------------

    def read_documentation(self, record: WorkItemRecord) -> str | None:
        return _read_optional(record.doc_path)

    def read_context(self, record: WorkItemRecord) -> str | None:
        return _read_optional(record.context_path)

    def load_detail(self, record: WorkItemRecord) -> WorkItemDetail:
        """Load both free-text bodies for one record."""
        return WorkItemDetail(
            record=record,
            documentation=self.read_documentation(record),
            context=self.read_context(record),
        )


def _read_optional(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None
