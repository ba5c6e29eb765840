"""Rich terminal renderer for the work-item board.

Turns a Snapshot's ``ColumnView`` into Rich renderables: one table column
per board column, a hierarchy tree, and a warnings table.

Column styles
-------------
- dim        : Backlog
- blue       : Ready
- yellow     : In Progress
- magenta    : Review
- green      : Done
- bold red   : Blocked
- red        : Other (unrecognized statuses)
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from workboard.board.columns import (
    BACKLOG,
    BLOCKED,
    DONE,
    IN_PROGRESS,
    OTHER,
    READY,
    REVIEW,
    STATUS_METADATA,
    ColumnView,
)
from workboard.board.projection import BoardStats
from workboard.models.snapshot import HierarchyNode, Snapshot, WarningKind
from workboard.models.work_items import WorkItemRecord

# ---------------------------------------------------------------------------
# Column -> Rich style mapping
# ---------------------------------------------------------------------------

_COLUMN_STYLES: dict[str, str] = {
    BACKLOG: "dim",
    READY: "bold blue",
    IN_PROGRESS: "bold yellow",
    REVIEW: "bold magenta",
    DONE: "bold green",
    BLOCKED: "bold red",
    OTHER: "red",
}

_WARNING_STYLES: dict[WarningKind, str] = {
    WarningKind.SCAN_ERROR: "red",
    WarningKind.PARSE_ERROR: "bold red",
    WarningKind.ORPHAN: "yellow",
    WarningKind.DUPLICATE_ID: "magenta",
    WarningKind.WATCH_ERROR: "bold yellow",
}


def _item_label(item: WorkItemRecord) -> str:
    meta = STATUS_METADATA[item.status]
    status = item.raw_status if not item.is_recognized else meta.label
    return f"[bold]{item.id}[/bold]\n{item.name}\n[{meta.color}]{status}[/{meta.color}]"


class BoardRenderer:
    """Renders board state as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    def render_board(
        self, view: ColumnView, stats: BoardStats, *, title: str = "Workboard"
    ) -> Panel:
        """Render the column view as a Panel containing one wide Table."""
        table = Table(show_header=True, expand=True, show_lines=False, pad_edge=True)
        for bucket in view.columns:
            style = _COLUMN_STYLES.get(bucket.name, "")
            table.add_column(
                f"[{style}]{bucket.name}[/{style}] ({bucket.stats.total})"
                if style
                else f"{bucket.name} ({bucket.stats.total})",
                ratio=1,
                overflow="fold",
            )

        depth = max((len(bucket.items) for bucket in view.columns), default=0)
        for row in range(depth):
            cells = []
            for bucket in view.columns:
                cells.append(
                    _item_label(bucket.items[row]) if row < len(bucket.items) else ""
                )
            table.add_row(*cells)

        summary_parts = [f"[bold]Items:[/bold] {stats.total}"]
        for type_name, count in stats.by_type.items():
            summary_parts.append(f"[bold]{type_name}:[/bold] {count}")
        if stats.warnings:
            summary_parts.append(
                f"[yellow][bold]Warnings:[/bold] {stats.warnings}[/yellow]"
            )
        summary = "  |  ".join(summary_parts)

        return Panel(
            Group(table, Text(""), Text.from_markup(summary)),
            title=f"[bold]{title}[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def render_tree(self, snapshot: Snapshot, *, label: str = "Work items") -> Tree:
        """Render the Snapshot's forest; orphans are marked."""
        tree = Tree(f"[bold]{label}[/bold] ({len(snapshot.items_by_id)})")
        for root in snapshot.roots:
            self._add_node(tree, root)
        return tree

    def _add_node(self, parent: Tree, node: HierarchyNode) -> None:
        record = node.record
        meta = STATUS_METADATA[record.status]
        text = (
            f"[bold]{record.id}[/bold] {record.name} "
            f"[{meta.color}]({record.raw_status})[/{meta.color}]"
        )
        if node.orphan:
            text += " [yellow]orphan[/yellow]"
        branch = parent.add(text)
        for child in node.children:
            self._add_node(branch, child)

    # ------------------------------------------------------------------
    # Warnings
    # ------------------------------------------------------------------

    def render_warnings(self, snapshot: Snapshot) -> Table | Text:
        if not snapshot.warnings:
            return Text.from_markup("[green]No warnings.[/green]")
        table = Table(title=f"{snapshot.warning_count} warnings", expand=True)
        table.add_column("Kind", no_wrap=True)
        table.add_column("Item", style="cyan", no_wrap=True)
        table.add_column("Message")
        for warning in snapshot.warnings:
            style = _WARNING_STYLES.get(warning.kind, "")
            table.add_row(
                f"[{style}]{warning.kind.value}[/{style}]",
                warning.item_id or "-",
                warning.message,
            )
        return table
