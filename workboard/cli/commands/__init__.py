"""Subcommands registered on the ``workboard`` Typer app."""
