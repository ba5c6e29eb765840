"""``workboard board`` — show the kanban columns in the terminal.

Single-shot by default.  ``--live`` keeps a Rich Live display that redraws
whenever the Coordinator publishes a new Snapshot.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live

from workboard.board.projection import BoardProjection
from workboard.board.renderer import BoardRenderer
from workboard.cli.commands._shared import PROJECT_ROOT_OPTION, board_config, load_snapshot
from workboard.config import BoardConfig
from workboard.core.coordinator import SyncCoordinator
from workboard.models.events import RefreshSignal
from workboard.models.snapshot import Snapshot

console = Console()


class _LiveBoardListener:
    """Redraws the Live display on every refresh signal."""

    listener_name = "terminal"

    def __init__(
        self, live: Live, coordinator: SyncCoordinator, renderer: BoardRenderer
    ) -> None:
        self._live = live
        self._coordinator = coordinator
        self._renderer = renderer

    async def send_refresh(self, signal: RefreshSignal) -> None:
        self._live.update(_render(self._renderer, self._coordinator.snapshot))


def _render(renderer: BoardRenderer, snapshot: Snapshot):
    projection = BoardProjection(snapshot)
    return renderer.render_board(
        projection.grouped(),
        projection.stats(),
        title=f"Workboard (generation {snapshot.generation})",
    )


async def _run_live(cfg: BoardConfig, renderer: BoardRenderer) -> None:
    coordinator = SyncCoordinator(cfg)
    with Live(console=renderer.console, refresh_per_second=4, transient=False) as live:
        coordinator.broadcaster.register(_LiveBoardListener(live, coordinator, renderer))
        await coordinator.start()
        try:
            await asyncio.Event().wait()
        finally:
            await coordinator.stop()


def board_cmd(
    project_root: Path = PROJECT_ROOT_OPTION,
    live: bool = typer.Option(
        False,
        "--live",
        "-L",
        help="Keep watching and redraw on every change (Ctrl+C to exit).",
    ),
) -> None:
    """Show work items grouped into board columns."""
    cfg = board_config(project_root)
    renderer = BoardRenderer(console=console)

    if live:
        console.print(f"[dim]Watching {cfg.descriptor_root}. Press Ctrl+C to exit.[/dim]")
        try:
            asyncio.run(_run_live(cfg, renderer))
        except KeyboardInterrupt:
            pass
        return

    snapshot = load_snapshot(cfg)
    console.print(_render(renderer, snapshot))
    if snapshot.warnings:
        console.print(
            f"[yellow]{snapshot.warning_count} items could not be loaded cleanly; "
            "run `workboard warnings` for details.[/yellow]"
        )
