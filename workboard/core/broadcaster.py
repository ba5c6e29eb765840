"""RefreshBroadcaster — fans a "refresh" signal out to every live listener.

The signal carries no diff.  Listeners re-fetch full state through the
query API, so there is exactly one source of truth: the published Snapshot.
A failing or slow listener is logged and dropped; it never prevents
delivery to the others and never fails the publish that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from workboard.models.events import RefreshSignal

logger = logging.getLogger(__name__)


@runtime_checkable
class RefreshListener(Protocol):
    """Anything that can receive a refresh signal (e.g. a WebSocket)."""

    listener_name: str

    async def send_refresh(self, signal: RefreshSignal) -> None: ...


class RefreshBroadcaster:
    """Registry of real-time listeners plus the broadcast fan-out.

    Parameters
    ----------
    send_timeout:
        Seconds a single listener may take before it is dropped.
    """

    def __init__(self, send_timeout: float = 2.0) -> None:
        self.send_timeout = send_timeout
        self._listeners: list[RefreshListener] = []

    # ------------------------------------------------------------------
    # Listener management
    # ------------------------------------------------------------------

    def register(self, listener: RefreshListener) -> None:
        """Add a listener.  Registering the same instance twice is a no-op."""
        if listener not in self._listeners:
            self._listeners.append(listener)
            logger.info("Listener connected: %s", listener.listener_name)

    def unregister(self, listener: RefreshListener) -> None:
        try:
            self._listeners.remove(listener)
            logger.info("Listener disconnected: %s", listener.listener_name)
        except ValueError:
            pass

    @property
    def listeners(self) -> list[RefreshListener]:
        """Return a copy of the registered listener list."""
        return list(self._listeners)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------

    async def broadcast_refresh(self, generation: int) -> list[str]:
        """Send one refresh signal to every listener.

        Returns the names of listeners that received it.  Listeners that
        fail or time out are unregistered.
        """
        signal = RefreshSignal(generation=generation)
        if not self._listeners:
            logger.debug("No listeners for refresh of generation %d", generation)
            return []

        targets = list(self._listeners)
        # Concurrent sends: the fan-out is bounded by one send_timeout.
        results = await asyncio.gather(
            *(
                asyncio.wait_for(listener.send_refresh(signal), timeout=self.send_timeout)
                for listener in targets
            ),
            return_exceptions=True,
        )

        delivered: list[str] = []
        for listener, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping listener %s after failed refresh: %r",
                    listener.listener_name,
                    result,
                )
                self.unregister(listener)
            else:
                delivered.append(listener.listener_name)

        logger.debug(
            "Refresh for generation %d delivered to %d/%d listeners",
            generation,
            len(delivered),
            len(targets),
        )
        return delivered
