"""Abstract base class for source record stores.

Defines the contract for persisting one row per ingested source.  Concrete
stores may keep rows in memory, in SQLite, or in a hosted Postgres exposed
over REST; the orchestrator only ever talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from notebook_ingest.models.source import Source


# Concrete implementations: MemoryRecordStore, SQLiteRecordStore, SupabaseRecordStore
# Located in: notebook_ingest/providers/store/
class ISourceStore(ABC):
    """Contract for source record persistence.

    Each pipeline task only ever writes the row it created, so
    implementations need no cross-row locking.
    """

    @abstractmethod
    async def create_source(self, source: Source) -> Source:
        """Insert *source* and return the stored record.

        Raises
        ------
        notebook_ingest.utils.errors.RecordStoreError
            If the row cannot be written.
        """

    @abstractmethod
    async def get_source(self, source_id: str) -> Source | None:
        """Return the source with *source_id*, or ``None`` if absent."""

    @abstractmethod
    async def update_source(self, source_id: str, **changes: Any) -> Source:
        """Apply *changes* to a stored source and return the updated record.

        ``updated_at`` is refreshed by the store.

        Raises
        ------
        notebook_ingest.utils.errors.SourceNotFoundError
            If no source with *source_id* exists.
        """

    @abstractmethod
    async def list_sources(self, notebook_id: str) -> list[Source]:
        """Return every source of a notebook, oldest first."""

    @abstractmethod
    async def delete_source(self, source_id: str) -> bool:
        """Delete a source.  Returns ``False`` when it did not exist."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"sqlite"``."""
