"""Source models for the ingestion pipeline.

Defines Pydantic v2 models for sources and the files users submit before a
source record exists.  ``Source`` is frozen: every status transition
produces a new instance via ``model_copy(update={...})`` and the record
store persists that copy.

A source moves through these stages:
    1. A user commits an add-action        -> FileCandidate (files only)
    2. The orchestrator creates the record -> Source (status "pending")
    3. Upload / processing update the row  -> Source (uploading ... completed)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class SourceType(str, Enum):  # noqa: UP042: StrEnum requires Python 3.11+
    """Closed set of source content types."""

    PDF = "pdf"
    TEXT = "text"
    AUDIO = "audio"
    WEBSITE = "website"
    YOUTUBE = "youtube"


class SourceOrigin(str, Enum):  # noqa: UP042
    """Which payload a source was created from.  Fixed at creation."""

    FILE = "file"
    URL = "url"
    TEXT = "text"


class ProcessingStatus(str, Enum):  # noqa: UP042
    """Ingestion-pipeline status of a source.

    pending -> uploading -> processing -> completed, with failed reachable
    from uploading or processing.  URL and text sources skip uploading.
    """

    PENDING = "pending"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


class Source(BaseModel):
    """One ingested content unit belonging to a notebook.

    Exactly one of ``file_size`` (file origin), ``url`` (url origin) or
    ``content`` (text origin) is set at creation.  ``file_path`` stays
    ``None`` until the blob upload succeeds.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    notebook_id: str
    title: str
    type: SourceType
    origin: SourceOrigin
    url: str | None = None
    content: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    file_path: str | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    # Informational only (original filename, mime type, character count ...).
    metadata: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def display_name(self) -> str:
        """Name shown in per-item reports (original filename when known)."""
        return str(self.metadata.get("original_filename") or self.title)


class FileCandidate(BaseModel):
    """A file a user picked but that has not been admitted yet.

    The raw bytes are held in a private attribute so that serialising a
    candidate (for logs or API echoes) never copies the payload.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    # Declared media type from the browser / multipart header.  May be "".
    content_type: str = ""
    size: int = Field(ge=0)
    _data: bytes | None = PrivateAttr(default=None)

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, content_type: str = "") -> FileCandidate:
        """Build a candidate whose ``size`` is taken from *data*."""
        candidate = cls(filename=filename, content_type=content_type or "", size=len(data))
        candidate._data = data
        return candidate

    @property
    def data(self) -> bytes | None:
        """Return the raw file bytes (excluded from serialization)."""
        return self._data
