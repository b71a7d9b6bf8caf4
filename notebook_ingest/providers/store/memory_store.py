"""In-memory record store for sources and notebooks.

Keeps frozen models in plain dicts.  Used by the test-suite and when
``RECORD_STORE=memory``.
Every method completes without yielding to the event loop between its read
and its write, so :meth:`claim_metadata_generation` is atomic under asyncio.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from notebook_ingest.interfaces.notebook_store import INotebookStore
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.models.notebook import Notebook
from notebook_ingest.models.source import Source
from notebook_ingest.utils.errors import NotebookNotFoundError, SourceNotFoundError
from notebook_ingest.utils.logging import get_logger


class MemoryRecordStore(ISourceStore, INotebookStore):
    """Dictionary-backed :class:`ISourceStore` and :class:`INotebookStore`."""

    def __init__(self) -> None:
        self._sources: dict[str, Source] = {}
        self._notebooks: dict[str, Notebook] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # -- Sources -----------------------------------------------------------

    async def create_source(self, source: Source) -> Source:
        self._sources[source.id] = source
        return source

    async def get_source(self, source_id: str) -> Source | None:
        return self._sources.get(source_id)

    async def update_source(self, source_id: str, **changes: Any) -> Source:
        current = self._sources.get(source_id)
        if current is None:
            raise SourceNotFoundError(
                message=f"Source {source_id} not found",
                provider_name=self.get_provider_name(),
            )
        updated = current.model_copy(update={**changes, "updated_at": _utcnow()})
        self._sources[source_id] = updated
        return updated

    async def list_sources(self, notebook_id: str) -> list[Source]:
        rows = [s for s in self._sources.values() if s.notebook_id == notebook_id]
        return sorted(rows, key=lambda s: s.created_at)

    async def delete_source(self, source_id: str) -> bool:
        return self._sources.pop(source_id, None) is not None

    # -- Notebooks ---------------------------------------------------------

    async def create_notebook(self, notebook: Notebook) -> Notebook:
        self._notebooks[notebook.id] = notebook
        return notebook

    async def get_notebook(self, notebook_id: str) -> Notebook | None:
        return self._notebooks.get(notebook_id)

    async def update_notebook(self, notebook_id: str, **changes: Any) -> Notebook:
        current = self._notebooks.get(notebook_id)
        if current is None:
            raise NotebookNotFoundError(
                message=f"Notebook {notebook_id} not found",
                provider_name=self.get_provider_name(),
            )
        updated = current.model_copy(update={**changes, "updated_at": _utcnow()})
        self._notebooks[notebook_id] = updated
        return updated

    async def claim_metadata_generation(self, notebook_id: str) -> bool:
        current = self._notebooks.get(notebook_id)
        if current is None or current.metadata_claimed:
            return False
        self._notebooks[notebook_id] = current.model_copy(
            update={"metadata_claimed": True, "updated_at": _utcnow()}
        )
        self._logger.debug("metadata_claimed", notebook_id=notebook_id)
        return True

    def get_provider_name(self) -> str:
        return "memory"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017
