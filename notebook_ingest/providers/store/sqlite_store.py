"""SQLite-backed record store for sources and notebooks.

Persists rows to a local SQLite database at ``data/notebooks.db``.  Uses
``aiosqlite`` for async I/O; every operation opens its own connection, so
the store is safe to share between concurrent pipeline tasks.

The metadata claim is a single conditional ``UPDATE`` whose affected row
count tells the caller whether it won.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from notebook_ingest.interfaces.notebook_store import INotebookStore
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.models.notebook import Notebook
from notebook_ingest.models.source import Source
from notebook_ingest.utils.errors import (
    NotebookNotFoundError,
    RecordStoreError,
    SourceNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/notebooks.db")

_CREATE_NOTEBOOKS_SQL = """\
CREATE TABLE IF NOT EXISTS notebooks (
    id                 TEXT    PRIMARY KEY,
    title              TEXT    NOT NULL,
    description        TEXT,
    icon               TEXT,
    color              TEXT,
    example_questions  TEXT    NOT NULL DEFAULT '[]',
    generation_status  TEXT,
    metadata_claimed   INTEGER NOT NULL DEFAULT 0,
    created_at         TEXT    NOT NULL,
    updated_at         TEXT    NOT NULL
);
"""

_CREATE_SOURCES_SQL = """\
CREATE TABLE IF NOT EXISTS sources (
    id                 TEXT    PRIMARY KEY,
    notebook_id        TEXT    NOT NULL,
    title              TEXT    NOT NULL,
    type               TEXT    NOT NULL,
    origin             TEXT    NOT NULL,
    url                TEXT,
    content            TEXT,
    file_size          INTEGER,
    file_path          TEXT,
    processing_status  TEXT    NOT NULL,
    metadata           TEXT    NOT NULL DEFAULT '{}',
    error_message      TEXT,
    created_at         TEXT    NOT NULL,
    updated_at         TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_sources_notebook ON sources(notebook_id, created_at);",
]

_SOURCE_COLUMNS = (
    "id", "notebook_id", "title", "type", "origin", "url", "content", "file_size",
    "file_path", "processing_status", "metadata", "error_message", "created_at", "updated_at",
)

_NOTEBOOK_COLUMNS = (
    "id", "title", "description", "icon", "color", "example_questions",
    "generation_status", "metadata_claimed", "created_at", "updated_at",
)


def _ts(value: datetime) -> str:
    """Fixed-width UTC timestamp so lexical order equals time order."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")  # noqa: UP017


def _source_row(source: Source) -> tuple[Any, ...]:
    return (
        source.id,
        source.notebook_id,
        source.title,
        source.type.value,
        source.origin.value,
        source.url,
        source.content,
        source.file_size,
        source.file_path,
        source.processing_status.value,
        json.dumps(source.metadata),
        source.error_message,
        _ts(source.created_at),
        _ts(source.updated_at),
    )


def _notebook_row(notebook: Notebook) -> tuple[Any, ...]:
    return (
        notebook.id,
        notebook.title,
        notebook.description,
        notebook.icon,
        notebook.color,
        json.dumps(notebook.example_questions),
        notebook.generation_status.value if notebook.generation_status else None,
        int(notebook.metadata_claimed),
        _ts(notebook.created_at),
        _ts(notebook.updated_at),
    )


def _to_source(row: aiosqlite.Row) -> Source:
    data = dict(row)
    data["metadata"] = json.loads(data["metadata"] or "{}")
    return Source.model_validate(data)


def _to_notebook(row: aiosqlite.Row) -> Notebook:
    data = dict(row)
    data["example_questions"] = json.loads(data["example_questions"] or "[]")
    data["metadata_claimed"] = bool(data["metadata_claimed"])
    return Notebook.model_validate(data)


class SQLiteRecordStore(ISourceStore, INotebookStore):
    """SQLite-backed source and notebook persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_NOTEBOOKS_SQL)
            await db.execute(_CREATE_SOURCES_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("record_db_initialized", path=str(self._db_path))

    # -- Sources -----------------------------------------------------------

    async def create_source(self, source: Source) -> Source:
        placeholders = ", ".join("?" for _ in _SOURCE_COLUMNS)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    f"INSERT INTO sources ({', '.join(_SOURCE_COLUMNS)}) VALUES ({placeholders})",
                    _source_row(source),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise RecordStoreError(
                message=f"Could not create source {source.id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return source

    async def get_source(self, source_id: str) -> Source | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM sources WHERE id = ?", (source_id,))
            row = await cursor.fetchone()
        return _to_source(row) if row is not None else None

    async def update_source(self, source_id: str, **changes: Any) -> Source:
        current = await self.get_source(source_id)
        if current is None:
            raise SourceNotFoundError(
                message=f"Source {source_id} not found",
                provider_name=self.get_provider_name(),
            )
        updated = current.model_copy(
            update={**changes, "updated_at": datetime.now(tz=timezone.utc)}  # noqa: UP017
        )
        assignments = ", ".join(f"{col} = ?" for col in _SOURCE_COLUMNS[1:])
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                f"UPDATE sources SET {assignments} WHERE id = ?",
                (*_source_row(updated)[1:], source_id),
            )
            await db.commit()
        return updated

    async def list_sources(self, notebook_id: str) -> list[Source]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM sources WHERE notebook_id = ? ORDER BY created_at, rowid",
                (notebook_id,),
            )
            rows = await cursor.fetchall()
        return [_to_source(r) for r in rows]

    async def delete_source(self, source_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM sources WHERE id = ?", (source_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        return deleted

    # -- Notebooks ---------------------------------------------------------

    async def create_notebook(self, notebook: Notebook) -> Notebook:
        placeholders = ", ".join("?" for _ in _NOTEBOOK_COLUMNS)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    f"INSERT INTO notebooks ({', '.join(_NOTEBOOK_COLUMNS)}) VALUES ({placeholders})",
                    _notebook_row(notebook),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise RecordStoreError(
                message=f"Could not create notebook {notebook.id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return notebook

    async def get_notebook(self, notebook_id: str) -> Notebook | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM notebooks WHERE id = ?", (notebook_id,))
            row = await cursor.fetchone()
        return _to_notebook(row) if row is not None else None

    async def update_notebook(self, notebook_id: str, **changes: Any) -> Notebook:
        current = await self.get_notebook(notebook_id)
        if current is None:
            raise NotebookNotFoundError(
                message=f"Notebook {notebook_id} not found",
                provider_name=self.get_provider_name(),
            )
        # The claim flag is only ever set through claim_metadata_generation.
        changes.pop("metadata_claimed", None)
        updated = current.model_copy(
            update={**changes, "updated_at": datetime.now(tz=timezone.utc)}  # noqa: UP017
        )
        columns = [c for c in _NOTEBOOK_COLUMNS[1:] if c != "metadata_claimed"]
        row = dict(zip(_NOTEBOOK_COLUMNS, _notebook_row(updated)))
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                f"UPDATE notebooks SET {', '.join(f'{c} = ?' for c in columns)} WHERE id = ?",
                (*(row[c] for c in columns), notebook_id),
            )
            await db.commit()
        return updated.model_copy(update={"metadata_claimed": current.metadata_claimed})

    async def claim_metadata_generation(self, notebook_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE notebooks SET metadata_claimed = 1, updated_at = ? "
                "WHERE id = ? AND metadata_claimed = 0",
                (_ts(datetime.now(tz=timezone.utc)), notebook_id),  # noqa: UP017
            )
            await db.commit()
            claimed = cursor.rowcount == 1
        logger.debug("metadata_claim", notebook_id=notebook_id, claimed=claimed)
        return claimed

    def get_provider_name(self) -> str:
        return "sqlite"
