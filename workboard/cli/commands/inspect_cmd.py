"""``workboard stats``, ``warnings`` and ``tree`` — one-shot Snapshot views."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from workboard.board.projection import compute_stats
from workboard.board.renderer import BoardRenderer
from workboard.cli.commands._shared import PROJECT_ROOT_OPTION, board_config, load_snapshot

console = Console()


def stats_cmd(project_root: Path = PROJECT_ROOT_OPTION) -> None:
    """Print item counts by type and by status."""
    snapshot = load_snapshot(board_config(project_root))
    stats = compute_stats(snapshot)

    table = Table(title=f"{stats.total} work items")
    table.add_column("Group", style="cyan")
    table.add_column("Value")
    table.add_column("Count", justify="right")
    for type_name, count in stats.by_type.items():
        table.add_row("type", type_name, str(count))
    for status, count in stats.by_status.items():
        table.add_row("status", status, str(count))
    console.print(table)
    if stats.warnings:
        console.print(f"[yellow]Warnings: {stats.warnings}[/yellow]")


def warnings_cmd(
    project_root: Path = PROJECT_ROOT_OPTION,
    strict: bool = typer.Option(
        False, "--strict", help="Exit with code 1 when any warning is present."
    ),
) -> None:
    """List scan, parse, orphan and duplicate-id warnings."""
    snapshot = load_snapshot(board_config(project_root))
    console.print(BoardRenderer(console=console).render_warnings(snapshot))
    if strict and snapshot.warnings:
        raise typer.Exit(code=1)


def tree_cmd(project_root: Path = PROJECT_ROOT_OPTION) -> None:
    """Print the work-item hierarchy."""
    snapshot = load_snapshot(board_config(project_root))
    if snapshot.is_empty:
        console.print("[dim]No work items found.[/dim]")
        return
    console.print(BoardRenderer(console=console).render_tree(snapshot))
