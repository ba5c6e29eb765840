"""Helpers shared by CLI commands: config overrides and one-shot loading."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import typer

from workboard.config import BoardConfig, config
from workboard.core.coordinator import SyncCoordinator
from workboard.models.snapshot import Snapshot

PROJECT_ROOT_OPTION = typer.Option(
    None,
    "--project-root",
    "-p",
    help="Project directory containing .avc/project (default: WORKBOARD_PROJECT_ROOT or cwd).",
)


def board_config(project_root: Path | None, **overrides: Any) -> BoardConfig:
    """The global config with CLI overrides applied."""
    update = {key: value for key, value in overrides.items() if value is not None}
    if project_root is not None:
        update["project_root"] = project_root
    return config.model_copy(update=update)


def load_snapshot(cfg: BoardConfig) -> Snapshot:
    """Build one Snapshot without watching."""
    coordinator = SyncCoordinator(cfg.model_copy(update={"watch_enabled": False}))

    async def _load() -> Snapshot:
        snapshot = await coordinator.start()
        await coordinator.stop()
        return snapshot

    return asyncio.run(_load())
