"""Pydantic request/response schemas for the notebook-ingest API.

# ─── HOW SCHEMAS WORK (Junior Developer Guide) ────────────────────────
#
# These models define the shape of every HTTP request and response body.
# FastAPI validates incoming JSON against them (invalid bodies get a 422)
# and serialises outgoing objects through them (response_model=...).
#
# Convention: request schemas end with "Request", response schemas end
# with "Response".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from notebook_ingest.models.notebook import GenerationStatus, Notebook
from notebook_ingest.models.pipeline import IngestionEvent, ItemOutcome
from notebook_ingest.models.source import ProcessingStatus, Source, SourceOrigin, SourceType


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    provider: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    record_store: str
    blob_storage: str
    content_processor: str
    metadata_generator: str
    backends: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


class CreateNotebookRequest(BaseModel):
    title: str | None = Field(default=None, max_length=200)


class NotebookResponse(BaseModel):
    id: str
    title: str
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    example_questions: list[str] = Field(default_factory=list)
    generation_status: GenerationStatus | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_notebook(cls, notebook: Notebook) -> NotebookResponse:
        return cls.model_validate(notebook.model_dump(exclude={"metadata_claimed"}))


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class SourceResponse(BaseModel):
    """A source as listed to clients.  Pasted/extracted text is omitted."""

    id: str
    notebook_id: str
    title: str
    type: SourceType
    origin: SourceOrigin
    url: str | None = None
    file_size: int | None = None
    file_path: str | None = None
    processing_status: ProcessingStatus
    metadata: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_source(cls, source: Source) -> SourceResponse:
        return cls.model_validate(source.model_dump(exclude={"content"}))


class SourceListResponse(BaseModel):
    notebook_id: str
    total: int
    sources: list[SourceResponse] = Field(default_factory=list)


class AddUrlsRequest(BaseModel):
    """Multi-line website links, one URL per line."""

    urls: str = Field(..., min_length=1)


class AddYouTubeRequest(BaseModel):
    url: str = Field(..., min_length=1)


class AddTextRequest(BaseModel):
    content: str
    title: str | None = Field(default=None, max_length=500)


class RejectedFile(BaseModel):
    filename: str
    reason: str


class SubmissionResponse(BaseModel):
    """Returned once admission is decided; ingestion continues in the background."""

    notebook_id: str
    accepted: int
    rejected: list[RejectedFile] = Field(default_factory=list)
    message: str


class ItemOutcomeResponse(BaseModel):
    name: str
    source_id: str | None = None
    status: ProcessingStatus | None = None
    skipped: bool = False
    degraded: bool = False
    error: str | None = None
    metadata_error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: ItemOutcome) -> ItemOutcomeResponse:
        return cls.model_validate(outcome.model_dump(exclude={"rejected"}))


class SourceEventResponse(BaseModel):
    kind: str
    notebook_id: str
    source_id: str | None = None
    status: ProcessingStatus | None = None
    message: str = ""
    timestamp: datetime

    @classmethod
    def from_event(cls, event: IngestionEvent) -> SourceEventResponse:
        return cls.model_validate(event.model_dump(mode="json"))
