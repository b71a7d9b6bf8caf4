"""FastAPI route definitions for the notebook-ingest API.

All endpoints live under the ``/api/v1`` prefix.  Service dependencies are
resolved from ``app.state`` via FastAPI's ``Depends`` using the
``Annotated`` pattern.

# ─── HOW AN ADD-ACTION FLOWS THROUGH THE API (Junior Developer Guide) ──
#
#   1. POST /notebooks/{id}/sources/files (or urls / youtube / text)
#   2. The route checks the notebook exists and decides admission
#      (rejected files are listed in the response straight away)
#   3. The accepted batch is handed to a BackgroundTask; the response is
#      sent with status 202
#   4. The orchestrator creates records and drives each source through
#      pending -> ... -> completed | failed, publishing events
#   5. Clients poll GET /notebooks/{id}/sources or
#      GET /sources/{id}/events for progress
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, Response, UploadFile

from notebook_ingest.api.schemas import (
    AddTextRequest,
    AddUrlsRequest,
    AddYouTubeRequest,
    CreateNotebookRequest,
    ErrorResponse,
    HealthResponse,
    ItemOutcomeResponse,
    NotebookResponse,
    RejectedFile,
    SourceEventResponse,
    SourceListResponse,
    SourceResponse,
    SubmissionResponse,
)
from notebook_ingest.interfaces.notebook_store import INotebookStore
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.models.pipeline import BatchResult
from notebook_ingest.models.source import FileCandidate
from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.pipeline.reporting import summarize_batch
from notebook_ingest.pipeline.validator import count_valid_urls, is_youtube_url, validate_file
from notebook_ingest.utils.errors import (
    NotebookNotFoundError,
    SourceNotFoundError,
    ValidationError,
)
from notebook_ingest.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_VERSION = "0.1.0"
_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_orchestrator(request: Request) -> IngestionOrchestrator:
    return request.app.state.orchestrator


def _get_source_store(request: Request) -> ISourceStore:
    return request.app.state.source_store


def _get_notebook_store(request: Request) -> INotebookStore:
    return request.app.state.notebook_store


def _get_event_bus(request: Request) -> IngestionEventBus:
    return request.app.state.event_bus


def _get_provider_names(request: Request) -> dict[str, Any]:
    return getattr(request.app.state, "provider_names", {})


OrchestratorDep = Annotated[IngestionOrchestrator, Depends(_get_orchestrator)]
SourceStoreDep = Annotated[ISourceStore, Depends(_get_source_store)]
NotebookStoreDep = Annotated[INotebookStore, Depends(_get_notebook_store)]
EventBusDep = Annotated[IngestionEventBus, Depends(_get_event_bus)]
ProviderNamesDep = Annotated[dict[str, Any], Depends(_get_provider_names)]


async def _require_notebook(notebooks: INotebookStore, notebook_id: str) -> None:
    if await notebooks.get_notebook(notebook_id) is None:
        raise NotebookNotFoundError(message=f"Notebook {notebook_id} not found")


# ---------------------------------------------------------------------------
# Background task helpers
# ---------------------------------------------------------------------------


async def _run_batch(batch: Awaitable[BatchResult], notebook_id: str) -> None:
    """Await an ingestion batch after the response has been sent.

    Item-level failures are already recorded on the sources; this only
    logs the summary, or the error when the batch could not run at all.
    """
    try:
        result = await batch
    except Exception as exc:
        _logger.error("background_batch_failed", notebook_id=notebook_id, error=str(exc))
        return

    summary = summarize_batch(result)
    _logger.info(
        "background_batch_done",
        notebook_id=notebook_id,
        title=summary.title,
        description=summary.description,
        variant=summary.variant.value,
    )


async def _read_capped(upload: UploadFile, limit: int) -> tuple[bytes | None, int]:
    """Read *upload* in chunks, stopping as soon as it passes *limit* bytes.

    Returns the bytes and their size, or ``None`` and the size read so far
    when the file is over the limit.
    """
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await upload.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > limit:
            return None, total_size
        chunks.append(chunk)
    return b"".join(chunks), total_size


def _queued_message(count: int) -> str:
    return f"{count} source{'' if count == 1 else 's'} queued for processing"


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(request: Request, providers: ProviderNamesDep) -> HealthResponse:
    settings = getattr(request.app.state, "settings", None)
    return HealthResponse(
        version=_VERSION,
        record_store=providers.get("record_store", "unknown"),
        blob_storage=providers.get("blob_storage", "unknown"),
        content_processor=providers.get("content_processor", "unknown"),
        metadata_generator=providers.get("metadata_generator", "unknown"),
        backends=settings.get_available_backends() if settings is not None else [],
    )


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


@router.post("/notebooks", response_model=NotebookResponse, status_code=201)
async def create_notebook(
    body: CreateNotebookRequest, orchestrator: OrchestratorDep
) -> NotebookResponse:
    notebook = await orchestrator.create_notebook(body.title)
    return NotebookResponse.from_notebook(notebook)


@router.get(
    "/notebooks/{notebook_id}",
    response_model=NotebookResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_notebook(notebook_id: str, notebooks: NotebookStoreDep) -> NotebookResponse:
    notebook = await notebooks.get_notebook(notebook_id)
    if notebook is None:
        raise NotebookNotFoundError(message=f"Notebook {notebook_id} not found")
    return NotebookResponse.from_notebook(notebook)


@router.get(
    "/notebooks/{notebook_id}/sources",
    response_model=SourceListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_sources(
    notebook_id: str, notebooks: NotebookStoreDep, sources: SourceStoreDep
) -> SourceListResponse:
    await _require_notebook(notebooks, notebook_id)
    rows = await sources.list_sources(notebook_id)
    return SourceListResponse(
        notebook_id=notebook_id,
        total=len(rows),
        sources=[SourceResponse.from_source(s) for s in rows],
    )


# ---------------------------------------------------------------------------
# Add-actions
# ---------------------------------------------------------------------------


@router.post(
    "/notebooks/{notebook_id}/sources/files",
    response_model=SubmissionResponse,
    status_code=202,
    responses={404: {"model": ErrorResponse}},
    summary="Upload one or more files as sources",
)
async def add_files(
    notebook_id: str,
    files: Annotated[list[UploadFile], File()],
    background_tasks: BackgroundTasks,
    orchestrator: OrchestratorDep,
    notebooks: NotebookStoreDep,
) -> SubmissionResponse:
    """Decide admission per file; accepted files are ingested in the background."""
    await _require_notebook(notebooks, notebook_id)

    accepted: list[FileCandidate] = []
    rejected: list[RejectedFile] = []
    for upload in files:
        filename = upload.filename or "upload"
        content_type = upload.content_type or ""
        data, size = await _read_capped(upload, orchestrator.max_file_size)
        verdict = validate_file(filename, content_type, size, max_size=orchestrator.max_file_size)
        if verdict.accepted and data is not None:
            accepted.append(FileCandidate.from_bytes(filename, data, content_type))
        else:
            rejected.append(RejectedFile(filename=filename, reason=verdict.reason or ""))

    if accepted:
        background_tasks.add_task(
            _run_batch, orchestrator.ingest_files(notebook_id, accepted), notebook_id
        )

    return SubmissionResponse(
        notebook_id=notebook_id,
        accepted=len(accepted),
        rejected=rejected,
        message=_queued_message(len(accepted)),
    )


@router.post(
    "/notebooks/{notebook_id}/sources/urls",
    response_model=SubmissionResponse,
    status_code=202,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_urls(
    notebook_id: str,
    body: AddUrlsRequest,
    background_tasks: BackgroundTasks,
    orchestrator: OrchestratorDep,
    notebooks: NotebookStoreDep,
) -> SubmissionResponse:
    """Add every valid line of ``urls`` as a website source."""
    await _require_notebook(notebooks, notebook_id)
    accepted = count_valid_urls(body.urls)
    if not accepted:
        raise ValidationError(message="No valid URLs to add")

    background_tasks.add_task(
        _run_batch, orchestrator.ingest_urls(notebook_id, body.urls), notebook_id
    )
    return SubmissionResponse(
        notebook_id=notebook_id,
        accepted=accepted,
        message=_queued_message(accepted),
    )


@router.post(
    "/notebooks/{notebook_id}/sources/youtube",
    response_model=SubmissionResponse,
    status_code=202,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_youtube(
    notebook_id: str,
    body: AddYouTubeRequest,
    background_tasks: BackgroundTasks,
    orchestrator: OrchestratorDep,
    notebooks: NotebookStoreDep,
) -> SubmissionResponse:
    await _require_notebook(notebooks, notebook_id)
    if not is_youtube_url(body.url.strip()):
        raise ValidationError(message=f"Not a YouTube URL: {body.url.strip()!r}")

    background_tasks.add_task(
        _run_batch, orchestrator.ingest_youtube(notebook_id, body.url), notebook_id
    )
    return SubmissionResponse(notebook_id=notebook_id, accepted=1, message=_queued_message(1))


@router.post(
    "/notebooks/{notebook_id}/sources/text",
    response_model=SubmissionResponse,
    status_code=202,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_text(
    notebook_id: str,
    body: AddTextRequest,
    background_tasks: BackgroundTasks,
    orchestrator: OrchestratorDep,
    notebooks: NotebookStoreDep,
) -> SubmissionResponse:
    await _require_notebook(notebooks, notebook_id)
    if not body.content.strip():
        raise ValidationError(message="Pasted text is empty")

    background_tasks.add_task(
        _run_batch, orchestrator.ingest_text(notebook_id, body.content, body.title), notebook_id
    )
    return SubmissionResponse(notebook_id=notebook_id, accepted=1, message=_queued_message(1))


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@router.get(
    "/sources/{source_id}",
    response_model=SourceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_source(source_id: str, sources: SourceStoreDep) -> SourceResponse:
    source = await sources.get_source(source_id)
    if source is None:
        raise SourceNotFoundError(message=f"Source {source_id} not found")
    return SourceResponse.from_source(source)


@router.delete(
    "/sources/{source_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
)
async def delete_source(source_id: str, orchestrator: OrchestratorDep) -> Response:
    if not await orchestrator.delete_source(source_id):
        raise SourceNotFoundError(message=f"Source {source_id} not found")
    return Response(status_code=204)


@router.post(
    "/sources/{source_id}/retry",
    response_model=ItemOutcomeResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Manually retry a failed source",
)
async def retry_source(
    source_id: str,
    orchestrator: OrchestratorDep,
    file: Annotated[UploadFile | None, File()] = None,
) -> ItemOutcomeResponse:
    """Retry a failed source.  Sources that never finished uploading need ``file``."""
    data: bytes | None = None
    content_type = ""
    if file is not None:
        data = await file.read()
        content_type = file.content_type or ""

    outcome = await orchestrator.retry_source(source_id, data=data, content_type=content_type)
    return ItemOutcomeResponse.from_outcome(outcome)


@router.get(
    "/sources/{source_id}/events",
    response_model=SourceEventResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_source_event(source_id: str, event_bus: EventBusDep) -> SourceEventResponse:
    """Return the most recent ingestion event recorded for a source."""
    event = event_bus.last_event(source_id)
    if event is None:
        raise SourceNotFoundError(message=f"No events for source {source_id}")
    return SourceEventResponse.from_event(event)
