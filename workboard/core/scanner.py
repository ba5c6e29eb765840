"""Descriptor scanner — enumerates ``work.json`` files under the project tree.

Purely read-only: no file is opened, only directories are listed.  A
subtree that cannot be listed is skipped and reported as a ``ScanError``;
the walk continues with its siblings.  Symlinked directories are followed,
but each real directory is visited at most once, so symlink cycles end.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ScanError(BaseModel):
    """A subtree that could not be listed."""

    model_config = ConfigDict(frozen=True)

    path: Path
    reason: str


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    paths: tuple[Path, ...] = ()
    errors: tuple[ScanError, ...] = ()


class DescriptorScanner:
    """Recursively finds descriptor files below ``root``.

    Parameters
    ----------
    root:
        Directory holding the work-item tree (``.avc/project``).
    descriptor_name:
        File name that marks a work-item directory.
    """

    def __init__(self, root: Path, descriptor_name: str = "work.json") -> None:
        self.root = Path(root)
        self.descriptor_name = descriptor_name

    def scan(self) -> ScanResult:
        """Return every descriptor path under the root, sorted.

        A missing root is an empty tree, not an error.
        """
        if not self.root.is_dir():
            logger.debug("Descriptor root %s does not exist", self.root)
            return ScanResult()

        paths: list[Path] = []
        errors: list[ScanError] = []
        visited: set[Path] = set()
        self._walk(self.root.resolve(), paths, errors, visited)

        paths.sort()
        return ScanResult(paths=tuple(paths), errors=tuple(errors))

    def _walk(
        self,
        directory: Path,
        paths: list[Path],
        errors: list[ScanError],
        visited: set[Path],
    ) -> None:
        try:
            real = directory.resolve()
        except OSError as exc:
            errors.append(ScanError(path=directory, reason=str(exc)))
            return
        if real in visited:
            logger.debug("Skipping already visited directory %s", directory)
            return
        visited.add(real)

        try:
            with os.scandir(directory) as entries:
                children = list(entries)
        except OSError as exc:
            logger.warning("Cannot scan %s: %s", directory, exc)
            errors.append(ScanError(path=directory, reason=exc.strerror or str(exc)))
            return

        for entry in sorted(children, key=lambda e: e.name):
            entry_path = Path(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=True)
                is_file = not is_dir and entry.is_file(follow_symlinks=True)
            except OSError as exc:
                errors.append(ScanError(path=entry_path, reason=str(exc)))
                continue
            if is_dir:
                self._walk(entry_path, paths, errors, visited)
            elif is_file and entry.name == self.descriptor_name:
                paths.append(entry_path)

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def relative_path(self, path: Path) -> Path:
        """Path of a descriptor relative to the scan root."""
        return Path(os.path.relpath(path, self.root.resolve()))

    def id_from_path(self, path: Path) -> str | None:
        """The deepest directory name, which by convention is the item id.

        ``epic-0001/story-0001-0001/work.json`` -> ``story-0001-0001``.
        A descriptor directly in the root has no id.
        """
        parent = self.relative_path(path).parent
        if parent == Path("."):
            return None
        return parent.name
