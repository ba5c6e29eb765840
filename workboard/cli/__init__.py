"""Workboard CLI — Typer-based command-line interface.

Provides the ``workboard`` command with subcommands for serving the board
API, printing the column view (once or live), and inspecting stats,
warnings and the hierarchy of a descriptor tree.

All output uses Rich for formatted terminal display.
"""
