"""Workboard query layer — pure read-only projections over a Snapshot.

The board NEVER maintains its own state.  Every view is derived from the
Snapshot it is handed.

Modules
-------
columns
    Fixed status -> column mapping and the ``ColumnView`` grouping.
projection
    ``BoardProjection``: stats, listings and JSON-ready payloads.
renderer
    ``BoardRenderer`` turns board views into Rich renderables.
"""
