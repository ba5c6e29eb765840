"""Synchronization engine: scan, read, build, watch, coordinate, broadcast."""
