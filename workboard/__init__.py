"""Workboard: live kanban board over a tree of work-item descriptors.

v0.2.0:
  - Recursive discovery of work.json descriptors under .avc/project
  - Hierarchy from identifiers (epic > story > task > subtask), orphans kept
  - Debounced watchdog file watching with coalesced full rebuilds
  - Immutable Snapshots published by reference swap
  - FastAPI query API + WebSocket "refresh" broadcast
  - Rich terminal board and Typer CLI
"""

__version__ = "0.2.0"
__description__ = "Live kanban board synchronized with work.json descriptor trees"

from workboard.core.coordinator import SyncCoordinator
from workboard.board.projection import BoardProjection
from workboard.server.app import create_app
from workboard.cli.app import app as cli

__all__ = ["SyncCoordinator", "BoardProjection", "create_app", "cli", "__version__"]
