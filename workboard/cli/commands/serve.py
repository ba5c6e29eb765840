"""``workboard serve`` — run the API server with live synchronization."""

from __future__ import annotations

from pathlib import Path

import typer
import uvicorn
from rich.console import Console

from workboard.cli.commands._shared import PROJECT_ROOT_OPTION, board_config
from workboard.core.coordinator import SyncCoordinator
from workboard.server.app import create_app

console = Console()


def serve_cmd(
    project_root: Path = PROJECT_ROOT_OPTION,
    host: str = typer.Option(None, "--host", help="Interface to bind."),
    port: int = typer.Option(None, "--port", help="Port to listen on."),
    no_watch: bool = typer.Option(
        False,
        "--no-watch",
        help="Disable file watching; the board updates only on POST /api/refresh.",
    ),
) -> None:
    """Serve the board API and WebSocket refresh channel.

    Loads every descriptor at startup, then rebuilds on each file change.
    """
    cfg = board_config(project_root, host=host, port=port)
    if no_watch:
        cfg = cfg.model_copy(update={"watch_enabled": False})

    if not cfg.descriptor_root.is_dir():
        console.print(
            f"[yellow]No descriptor tree at {cfg.descriptor_root} yet; "
            "serving an empty board.[/yellow]"
        )

    coordinator = SyncCoordinator(cfg)
    app = create_app(coordinator)

    console.print(f"[bold cyan]Workboard[/bold cyan] on http://{cfg.host}:{cfg.port}")
    console.print(f"[dim]WebSocket at ws://{cfg.host}:{cfg.port}/ws[/dim]")
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())
