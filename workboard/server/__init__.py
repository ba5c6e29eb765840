"""Workboard server — FastAPI query API plus the WebSocket refresh channel."""

from workboard.server.app import create_app

__all__ = ["create_app"]
