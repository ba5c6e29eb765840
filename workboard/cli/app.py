"""Main Typer application — imports and registers all CLI commands.

Entry point: ``workboard`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from workboard.cli.commands.board_cmd import board_cmd
from workboard.cli.commands.inspect_cmd import stats_cmd, tree_cmd, warnings_cmd
from workboard.cli.commands.serve import serve_cmd
from workboard.config import config

app = typer.Typer(
    name="workboard",
    help="Workboard: live kanban view over a tree of work.json descriptors.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True), rich_tracebacks=True, show_path=False
            )
        ],
        force=True,
    )


@app.callback()
def _root(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (default: WORKBOARD_LOG_LEVEL or INFO)."
    ),
) -> None:
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="serve", help="Serve the board API with live file watching.")(serve_cmd)
app.command(name="board", help="Show the kanban columns (once, or --live).")(board_cmd)
app.command(name="stats", help="Show item counts by type and status.")(stats_cmd)
app.command(name="warnings", help="List Snapshot warnings.")(warnings_cmd)
app.command(name="tree", help="Show the work-item hierarchy.")(tree_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
