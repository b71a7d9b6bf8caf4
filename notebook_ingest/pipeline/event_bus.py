"""Ingestion event stream with callback-based listener notification.

The orchestrator publishes an :class:`IngestionEvent` whenever a source is
created, rejected, moves to a new status or is deleted, and when notebook
metadata is generated.  Listeners are keyed by notebook ID so several
notebooks can ingest concurrently without cross-talk.

# ─── HOW THE EVENT STREAM WORKS (Junior Developer Guide) ──────────────
#
#   Orchestrator ──publish()──→ IngestionEventBus ──callback()──→ UI / CLI
#                                                  ──→ (any other listener)
#
#   1. Each pipeline task publishes events for the single row it owns
#   2. The bus keeps the last status event per source (polled by the HTTP API)
#   3. Listeners for that notebook are invoked in registration order
#
# Listener errors are caught and logged, so a broken listener never fails
# a pipeline task.  Both sync and async callbacks are supported.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from notebook_ingest.models.pipeline import IngestionEvent
from notebook_ingest.utils.logging import get_logger


class IngestionEventBus:
    """Tracks and broadcasts ingestion events via callbacks.

    External consumers register callbacks per notebook; each callback
    receives the :class:`IngestionEvent`.  Callbacks registered under
    :attr:`ALL_NOTEBOOKS` receive every event.
    """

    ALL_NOTEBOOKS = "*"

    def __init__(self) -> None:
        # Last status-bearing event for each source, keyed by source_id
        self._last_events: dict[str, IngestionEvent] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def publish(self, event: IngestionEvent) -> None:
        """Record *event* and notify listeners of its notebook."""
        if event.source_id is not None and event.status is not None:
            self._last_events[event.source_id] = event

        self._logger.debug(
            "ingestion_event",
            kind=event.kind.value,
            notebook_id=event.notebook_id,
            source_id=event.source_id,
            status=event.status.value if event.status else None,
        )

        await self._notify_listeners(event)

    def register_listener(self, notebook_id: str, callback: Callable) -> None:
        """Register a callback for events of one notebook.

        Parameters
        ----------
        notebook_id:
            The notebook to listen to, or :attr:`ALL_NOTEBOOKS`.
        callback:
            An async or sync callable accepting one :class:`IngestionEvent`.
        """
        listeners = self._listeners.setdefault(notebook_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                notebook_id=notebook_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, notebook_id: str, callback: Callable) -> None:
        """Remove a previously registered callback."""
        listeners = self._listeners.get(notebook_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                notebook_id=notebook_id,
                remaining_listeners=len(listeners),
            )

    def last_event(self, source_id: str) -> IngestionEvent | None:
        """Return the most recent status event published for *source_id*."""
        return self._last_events.get(source_id)

    def forget(self, source_id: str) -> None:
        """Drop the stored last event for a deleted source."""
        self._last_events.pop(source_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, event: IngestionEvent) -> None:
        listeners = [
            *self._listeners.get(event.notebook_id, []),
            *self._listeners.get(self.ALL_NOTEBOOKS, []),
        ]
        for callback in listeners:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    notebook_id=event.notebook_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
