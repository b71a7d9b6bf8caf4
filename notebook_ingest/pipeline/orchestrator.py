"""Central orchestrator for the source ingestion pipeline.

Admits candidate sources, creates their records, uploads raw bytes,
dispatches content processing, drives each source's
:class:`~notebook_ingest.pipeline.state_machine.SourceStateMachine` and
triggers notebook metadata generation for the first source of a notebook
to complete.

ARCHITECTURE NOTE (for junior developers):
    Every add-action (files, website links, a YouTube link, pasted text)
    becomes a *batch*.  A batch always runs the same way:

        1. Validate every candidate.  Rejections are reported and never
           reach the record store.
        2. Create the FIRST accepted item's record and run it to a
           terminal status.
        3. Wait until the gate delay has passed since that record's
           ``created_at``.
        4. Create and run the remaining items concurrently, bounded by a
           semaphore.  One item's failure never touches another item.

    Each item follows the same pattern:
        1. Create the record with status "pending" (before any I/O)
        2. Upload bytes (files only): pending -> uploading -> processing
        3. Call the content processor; apply the processing policy
        4. Claim metadata generation for the notebook (first caller wins)

    The orchestrator knows nothing about toasts or progress bars: it
    returns a :class:`BatchResult` and publishes :class:`IngestionEvent`
    records on the injected :class:`IngestionEventBus`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.interfaces.content_processor import IContentProcessor
from notebook_ingest.interfaces.metadata_generator import IMetadataGenerator
from notebook_ingest.interfaces.notebook_store import INotebookStore
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.models.notebook import (
    DEFAULT_NOTEBOOK_TITLE,
    GenerationStatus,
    Notebook,
)
from notebook_ingest.models.pipeline import (
    BatchResult,
    FailurePolicy,
    IngestionEvent,
    IngestionEventKind,
    ItemOutcome,
    SourceEvent,
    StagePolicies,
)
from notebook_ingest.models.source import (
    FileCandidate,
    ProcessingStatus,
    Source,
    SourceOrigin,
    SourceType,
)
from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.state_machine import SourceStateMachine
from notebook_ingest.pipeline.validator import (
    MAX_FILE_SIZE,
    derive_text_title,
    domain_label,
    is_youtube_url,
    parse_url_lines,
    validate_file,
)
from notebook_ingest.utils.concurrency import settle_after, throttled_gather
from notebook_ingest.utils.errors import (
    NotebookNotFoundError,
    PipelineError,
    SourceNotFoundError,
    ValidationError,
)
from notebook_ingest.utils.logging import get_logger, ingestion_context

DEFAULT_GATE_DELAY_SECONDS = 0.15
DEFAULT_MAX_CONCURRENT_ITEMS = 8

# run_source leaves these alone: terminal, or owned by a running upload.
_NO_OP_STATUSES = frozenset(
    {ProcessingStatus.COMPLETED, ProcessingStatus.UPLOADING, ProcessingStatus.FAILED}
)


@dataclass
class _BatchItem:
    """An admitted candidate whose record has not been created yet."""

    name: str
    build: Callable[[], Source]
    data: bytes | None = None
    content_type: str = ""


class IngestionOrchestrator:
    """Runs add-actions through validation, upload, processing and metadata.

    All collaborators are injected; the orchestrator never creates them.

    Parameters
    ----------
    source_store, notebook_store:
        Record persistence.  One object may implement both.
    blob_storage:
        Where uploaded file bytes go.
    content_processor:
        Extracts content once a source reaches ``processing``.
    metadata_generator:
        Derives notebook title/description from the first completed source.
    event_bus:
        Receives an :class:`IngestionEvent` for every record change.
    policies:
        Degrade-vs-fail behaviour of the processing and metadata stages.
    max_file_size:
        Inclusive byte limit for uploaded files.
    gate_delay_seconds:
        Minimum gap between the first item's ``created_at`` and the
        creation of the remaining items of a batch.
    max_concurrent_items:
        Upper bound on items in flight after the gate.
    """

    def __init__(
        self,
        source_store: ISourceStore,
        notebook_store: INotebookStore,
        blob_storage: IBlobStorage,
        content_processor: IContentProcessor,
        metadata_generator: IMetadataGenerator,
        event_bus: IngestionEventBus | None = None,
        policies: StagePolicies | None = None,
        max_file_size: int = MAX_FILE_SIZE,
        gate_delay_seconds: float = DEFAULT_GATE_DELAY_SECONDS,
        max_concurrent_items: int = DEFAULT_MAX_CONCURRENT_ITEMS,
    ) -> None:
        self._sources = source_store
        self._notebooks = notebook_store
        self._blob_storage = blob_storage
        self._content_processor = content_processor
        self._metadata_generator = metadata_generator
        self._event_bus = event_bus or IngestionEventBus()
        self._policies = policies or StagePolicies()
        self._max_file_size = max_file_size
        self._gate_delay_seconds = gate_delay_seconds
        self._semaphore = asyncio.Semaphore(max(1, max_concurrent_items))
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def event_bus(self) -> IngestionEventBus:
        return self._event_bus

    @property
    def policies(self) -> StagePolicies:
        return self._policies

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    # ------------------------------------------------------------------
    # Notebooks
    # ------------------------------------------------------------------

    async def create_notebook(self, title: str | None = None) -> Notebook:
        """Create an empty notebook, titled *title* or the default title."""
        clean_title = (title or "").strip() or DEFAULT_NOTEBOOK_TITLE
        notebook = await self._notebooks.create_notebook(Notebook(title=clean_title))
        self._logger.info("notebook_created", notebook_id=notebook.id, title=notebook.title)
        return notebook

    # ------------------------------------------------------------------
    # Add-actions
    # ------------------------------------------------------------------

    async def ingest_files(
        self, notebook_id: str, files: list[FileCandidate]
    ) -> BatchResult:
        """Validate and ingest uploaded files.

        Rejected files are reported in the result (``rejected=True``) at
        their submission position; no record is ever created for them.

        Raises
        ------
        NotebookNotFoundError
            If *notebook_id* does not exist.
        """
        await self._require_notebook(notebook_id)
        started_at = datetime.now(tz=timezone.utc)  # noqa: UP017

        slots: list[ItemOutcome | _BatchItem] = []
        for candidate in files:
            verdict = validate_file(
                candidate.filename,
                candidate.content_type,
                candidate.size,
                max_size=self._max_file_size,
            )
            if not verdict.accepted:
                self._logger.info(
                    "file_rejected",
                    notebook_id=notebook_id,
                    filename=candidate.filename,
                    reason=verdict.reason,
                )
                await self._event_bus.publish(
                    IngestionEvent(
                        kind=IngestionEventKind.SOURCE_REJECTED,
                        notebook_id=notebook_id,
                        message=f"{candidate.filename}: {verdict.reason}",
                    )
                )
                slots.append(
                    ItemOutcome(name=candidate.filename, rejected=True, error=verdict.reason)
                )
                continue

            slots.append(
                _BatchItem(
                    name=candidate.filename,
                    build=self._file_source_factory(notebook_id, candidate, verdict.source_type),
                    data=candidate.data,
                    content_type=candidate.content_type,
                )
            )

        return await self._run_batch(notebook_id, slots, started_at)

    async def ingest_urls(self, notebook_id: str, raw_text: str) -> BatchResult:
        """Ingest every valid line of *raw_text* as a ``website`` source.

        Invalid and blank lines are dropped silently.

        Raises
        ------
        ValidationError
            If no line is a valid URL.
        NotebookNotFoundError
            If *notebook_id* does not exist.
        """
        urls = parse_url_lines(raw_text)
        if not urls:
            raise ValidationError(message="No valid URLs to add")
        await self._require_notebook(notebook_id)
        started_at = datetime.now(tz=timezone.utc)  # noqa: UP017

        slots: list[ItemOutcome | _BatchItem] = [
            _BatchItem(
                name=url,
                build=self._url_source_factory(notebook_id, url, SourceType.WEBSITE, domain_label(url)),
            )
            for url in urls
        ]
        return await self._run_batch(notebook_id, slots, started_at)

    async def ingest_youtube(self, notebook_id: str, url: str) -> BatchResult:
        """Ingest a single YouTube link.

        Raises
        ------
        ValidationError
            If *url* is not a valid YouTube URL.
        """
        clean_url = url.strip()
        if not is_youtube_url(clean_url):
            raise ValidationError(message=f"Not a YouTube URL: {clean_url!r}")
        await self._require_notebook(notebook_id)
        started_at = datetime.now(tz=timezone.utc)  # noqa: UP017

        item = _BatchItem(
            name=clean_url,
            build=self._url_source_factory(notebook_id, clean_url, SourceType.YOUTUBE, clean_url),
        )
        return await self._run_batch(notebook_id, [item], started_at)

    async def ingest_text(
        self, notebook_id: str, content: str, title: str | None = None
    ) -> BatchResult:
        """Ingest pasted text.

        The title is *title* (stripped) when given, else derived from the
        first non-blank line of *content*.

        Raises
        ------
        ValidationError
            If *content* is empty or whitespace only.
        """
        if not content.strip():
            raise ValidationError(message="Pasted text is empty")
        await self._require_notebook(notebook_id)
        started_at = datetime.now(tz=timezone.utc)  # noqa: UP017

        resolved_title = (title or "").strip() or derive_text_title(content)

        def build() -> Source:
            return Source(
                notebook_id=notebook_id,
                title=resolved_title,
                type=SourceType.TEXT,
                origin=SourceOrigin.TEXT,
                content=content,
                metadata={"character_count": len(content)},
            )

        return await self._run_batch(
            notebook_id, [_BatchItem(name=resolved_title, build=build)], started_at
        )

    # ------------------------------------------------------------------
    # Re-entry
    # ------------------------------------------------------------------

    async def run_source(
        self, source_id: str, data: bytes | None = None, content_type: str = ""
    ) -> ItemOutcome:
        """Drive an existing source forward from its persisted status.

        Completed, failed and uploading sources are left untouched
        (``skipped=True``).  A pending source runs from the start; a
        source stuck in ``processing`` re-runs processing.

        Raises
        ------
        SourceNotFoundError
            If *source_id* does not exist.
        PipelineError
            If a pending file source has no stored blob and no *data*.
        """
        source = await self._require_source(source_id)
        if source.processing_status in _NO_OP_STATUSES:
            self._logger.debug(
                "run_source_skipped",
                source_id=source.id,
                status=source.processing_status.value,
            )
            return ItemOutcome(
                name=source.display_name,
                source_id=source.id,
                status=source.processing_status,
                skipped=True,
                error=source.error_message,
            )

        self._check_upload_bytes(source, data)
        machine = SourceStateMachine(source.processing_status, source_id=source.id)
        return await self._drive(source, machine, data, content_type)

    async def retry_source(
        self, source_id: str, data: bytes | None = None, content_type: str = ""
    ) -> ItemOutcome:
        """Manually retry a failed source (``failed -> pending``) and re-run it.

        Sources in any other status are delegated to :meth:`run_source`.

        Raises
        ------
        PipelineError
            If the source never finished uploading and *data* is missing.
            The source stays ``failed``.
        """
        source = await self._require_source(source_id)
        if source.processing_status != ProcessingStatus.FAILED:
            return await self.run_source(source_id, data, content_type)

        self._check_upload_bytes(source, data)
        machine = SourceStateMachine(source.processing_status, source_id=source.id)
        self._logger.info("source_retry", source_id=source.id, notebook_id=source.notebook_id)
        source = await self._apply(source, machine, SourceEvent.RETRY, manual=True, error_message=None)
        return await self._drive(source, machine, data, content_type)

    async def delete_source(self, source_id: str) -> bool:
        """Delete a source record and its stored blob.

        Returns ``False`` when the source does not exist.
        """
        source = await self._sources.get_source(source_id)
        if source is None:
            return False

        if source.file_path:
            await self._blob_storage.delete(source.file_path)

        deleted = await self._sources.delete_source(source_id)
        if deleted:
            self._logger.info("source_deleted", source_id=source_id, notebook_id=source.notebook_id)
            await self._event_bus.publish(
                IngestionEvent(
                    kind=IngestionEventKind.SOURCE_DELETED,
                    notebook_id=source.notebook_id,
                    source_id=source_id,
                )
            )
            self._event_bus.forget(source_id)
        return deleted

    # ------------------------------------------------------------------
    # Batch sequencing
    # ------------------------------------------------------------------

    async def _run_batch(
        self,
        notebook_id: str,
        slots: list[ItemOutcome | _BatchItem],
        started_at: datetime,
    ) -> BatchResult:
        outcomes: list[ItemOutcome | None] = [
            slot if isinstance(slot, ItemOutcome) else None for slot in slots
        ]
        pending = [(i, slot) for i, slot in enumerate(slots) if isinstance(slot, _BatchItem)]

        if pending:
            first_index, first_item = pending[0]
            first_outcome, first_created_at = await self._ingest_item(first_item)
            outcomes[first_index] = first_outcome

            rest = pending[1:]
            if rest:
                await settle_after(
                    first_created_at or datetime.now(tz=timezone.utc),  # noqa: UP017
                    self._gate_delay_seconds,
                )
                results = await throttled_gather(
                    [self._ingest_item(item) for _, item in rest],
                    semaphore=self._semaphore,
                )
                for (index, item), result in zip(rest, results):
                    if isinstance(result, BaseException):
                        outcomes[index] = ItemOutcome(
                            name=item.name,
                            status=ProcessingStatus.FAILED,
                            error=str(result),
                        )
                    else:
                        outcomes[index] = result[0]

        result = BatchResult(
            notebook_id=notebook_id,
            outcomes=[o for o in outcomes if o is not None],
            started_at=started_at,
            completed_at=datetime.now(tz=timezone.utc),  # noqa: UP017
        )
        self._logger.info(
            "batch_settled",
            notebook_id=notebook_id,
            total=result.total,
            succeeded=result.success_count,
            failed=result.failure_count,
        )
        await self._event_bus.publish(
            IngestionEvent(
                kind=IngestionEventKind.BATCH_SETTLED,
                notebook_id=notebook_id,
                message=f"{result.success_count}/{result.total} succeeded",
            )
        )
        return result

    async def _ingest_item(self, item: _BatchItem) -> tuple[ItemOutcome, datetime | None]:
        """Create one record and drive it to a terminal status."""
        try:
            source = await self._sources.create_source(item.build())
        except Exception as exc:
            self._logger.error("source_create_failed", name=item.name, error=str(exc))
            return (
                ItemOutcome(name=item.name, status=ProcessingStatus.FAILED, error=str(exc)),
                None,
            )

        self._logger.info(
            "source_created",
            source_id=source.id,
            notebook_id=source.notebook_id,
            type=source.type.value,
            origin=source.origin.value,
        )
        await self._event_bus.publish(
            IngestionEvent(
                kind=IngestionEventKind.SOURCE_CREATED,
                notebook_id=source.notebook_id,
                source_id=source.id,
                status=source.processing_status,
                message=source.title,
            )
        )

        machine = SourceStateMachine(source.processing_status, source_id=source.id)
        outcome = await self._drive(source, machine, item.data, item.content_type)
        return outcome, source.created_at

    # ------------------------------------------------------------------
    # Per-source stages
    # ------------------------------------------------------------------

    async def _drive(
        self,
        source: Source,
        machine: SourceStateMachine,
        data: bytes | None,
        content_type: str,
    ) -> ItemOutcome:
        """Run upload (when needed) and processing, then claim metadata."""
        with ingestion_context(notebook_id=source.notebook_id, source_id=source.id):
            return await self._drive_source(source, machine, data, content_type)

    async def _drive_source(
        self,
        source: Source,
        machine: SourceStateMachine,
        data: bytes | None,
        content_type: str,
    ) -> ItemOutcome:
        processing_error: str | None = None
        try:
            if machine.status == ProcessingStatus.PENDING and self._needs_upload(source):
                source = await self._upload(source, machine, data, content_type)
            elif machine.status == ProcessingStatus.PENDING:
                source = await self._apply(source, machine, SourceEvent.BEGIN_PROCESSING)
            source, processing_error = await self._process(source, machine)
        except Exception as exc:
            source = await self._mark_failed(source, machine, exc)
            return ItemOutcome(
                name=source.display_name,
                source_id=source.id,
                status=source.processing_status,
                error=source.error_message or str(exc),
            )

        metadata_error = await self._maybe_generate_metadata(source)
        return ItemOutcome(
            name=source.display_name,
            source_id=source.id,
            status=source.processing_status,
            degraded=processing_error is not None,
            error=processing_error,
            metadata_error=metadata_error,
        )

    async def _upload(
        self,
        source: Source,
        machine: SourceStateMachine,
        data: bytes | None,
        content_type: str,
    ) -> Source:
        if data is None:
            raise PipelineError(message=f"No file bytes to upload for source {source.id}")

        source = await self._apply(source, machine, SourceEvent.BEGIN_UPLOAD)
        file_path = await self._blob_storage.upload(
            data,
            source.notebook_id,
            source.id,
            source.display_name,
            content_type or str(source.metadata.get("mime_type", "")),
        )
        self._logger.info(
            "source_uploaded",
            source_id=source.id,
            file_path=file_path,
            provider=self._blob_storage.get_provider_name(),
        )
        return await self._apply(source, machine, SourceEvent.UPLOAD_SUCCEEDED, file_path=file_path)

    async def _process(
        self, source: Source, machine: SourceStateMachine
    ) -> tuple[Source, str | None]:
        """Call the content processor and apply the processing policy.

        Returns the completed source and the processing error message when
        the source was completed in degraded mode.
        """
        try:
            await self._content_processor.process(
                source.id, self._content_path(source), source.type
            )
        except Exception as exc:
            if self._policies.processing == FailurePolicy.FAIL:
                raise
            self._logger.warning(
                "processing_degraded",
                source_id=source.id,
                provider=self._content_processor.get_provider_name(),
                error=str(exc),
            )
            metadata = {**source.metadata, "processing_degraded": True, "processing_error": str(exc)}
            source = await self._apply(
                source, machine, SourceEvent.PROCESSING_DEGRADED, metadata=metadata
            )
            return source, str(exc)

        source = await self._apply(source, machine, SourceEvent.PROCESSING_SUCCEEDED)
        return source, None

    async def _mark_failed(
        self, source: Source, machine: SourceStateMachine, exc: Exception
    ) -> Source:
        self._logger.error(
            "source_failed",
            source_id=source.id,
            notebook_id=source.notebook_id,
            status=machine.status.value,
            error=str(exc),
        )
        if not machine.can_fire(SourceEvent.FAIL):
            return source
        try:
            return await self._apply(source, machine, SourceEvent.FAIL, error_message=str(exc))
        except Exception as store_exc:
            self._logger.error(
                "source_failure_not_recorded",
                source_id=source.id,
                error=str(store_exc),
            )
            return source.model_copy(
                update={"processing_status": machine.status, "error_message": str(exc)}
            )

    async def _maybe_generate_metadata(self, source: Source) -> str | None:
        """Generate notebook metadata when *source* is the first to complete.

        Never changes the source.  Returns the failure message only when
        the metadata policy is ``FAIL``.
        """
        notebook_id = source.notebook_id
        if not await self._notebooks.claim_metadata_generation(notebook_id):
            return None

        self._logger.info("metadata_generation_started", notebook_id=notebook_id, source_id=source.id)
        try:
            await self._notebooks.update_notebook(
                notebook_id, generation_status=GenerationStatus.GENERATING
            )
            metadata = await self._metadata_generator.generate(
                notebook_id,
                self._content_path(source),
                source.type,
                content=source.content,
            )
            await self._notebooks.update_notebook(
                notebook_id,
                title=metadata.title,
                description=metadata.description,
                icon=metadata.icon,
                color=metadata.color,
                example_questions=list(metadata.example_questions),
                generation_status=GenerationStatus.COMPLETED,
            )
        except Exception as exc:
            self._logger.warning(
                "metadata_generation_failed",
                notebook_id=notebook_id,
                provider=self._metadata_generator.get_provider_name(),
                error=str(exc),
            )
            await self._record_metadata_failure(notebook_id, source.id, exc)
            if self._policies.metadata == FailurePolicy.FAIL:
                return str(exc)
            return None

        self._logger.info("metadata_generated", notebook_id=notebook_id, title=metadata.title)
        await self._event_bus.publish(
            IngestionEvent(
                kind=IngestionEventKind.METADATA_GENERATED,
                notebook_id=notebook_id,
                source_id=source.id,
                message=metadata.title,
            )
        )
        return None

    async def _record_metadata_failure(
        self, notebook_id: str, source_id: str, exc: Exception
    ) -> None:
        try:
            await self._notebooks.update_notebook(
                notebook_id, generation_status=GenerationStatus.FAILED
            )
        except Exception as store_exc:
            self._logger.error(
                "metadata_failure_not_recorded",
                notebook_id=notebook_id,
                error=str(store_exc),
            )
        await self._event_bus.publish(
            IngestionEvent(
                kind=IngestionEventKind.METADATA_FAILED,
                notebook_id=notebook_id,
                source_id=source_id,
                message=str(exc),
            )
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _apply(
        self,
        source: Source,
        machine: SourceStateMachine,
        event: SourceEvent,
        *,
        manual: bool = False,
        **changes: Any,
    ) -> Source:
        """Fire *event* on the machine and persist the resulting status."""
        transition = machine.fire(event, manual=manual)
        updated = await self._sources.update_source(
            source.id, processing_status=transition.target, **changes
        )
        self._logger.debug(
            "source_transition",
            source_id=source.id,
            source_event=event.value,
            from_status=transition.source.value,
            to_status=transition.target.value,
        )
        await self._event_bus.publish(
            IngestionEvent(
                kind=IngestionEventKind.STATUS_CHANGED,
                notebook_id=updated.notebook_id,
                source_id=updated.id,
                status=updated.processing_status,
                message=updated.error_message or "",
            )
        )
        return updated

    async def _require_notebook(self, notebook_id: str) -> Notebook:
        notebook = await self._notebooks.get_notebook(notebook_id)
        if notebook is None:
            raise NotebookNotFoundError(message=f"Notebook {notebook_id} not found")
        return notebook

    async def _require_source(self, source_id: str) -> Source:
        source = await self._sources.get_source(source_id)
        if source is None:
            raise SourceNotFoundError(message=f"Source {source_id} not found")
        return source

    def _check_upload_bytes(self, source: Source, data: bytes | None) -> None:
        if self._needs_upload(source) and data is None:
            raise PipelineError(
                message=f"Source {source.id} was never uploaded; the file must be provided again"
            )

    @staticmethod
    def _needs_upload(source: Source) -> bool:
        return source.origin == SourceOrigin.FILE and source.file_path is None

    @staticmethod
    def _content_path(source: Source) -> str | None:
        """Path handed to processors and generators: blob path, URL or None."""
        if source.origin == SourceOrigin.FILE:
            return source.file_path
        if source.origin == SourceOrigin.URL:
            return source.url
        return None

    @staticmethod
    def _file_source_factory(
        notebook_id: str, candidate: FileCandidate, source_type: SourceType | None
    ) -> Callable[[], Source]:
        def build() -> Source:
            return Source(
                notebook_id=notebook_id,
                title=candidate.filename,
                type=source_type or SourceType.TEXT,
                origin=SourceOrigin.FILE,
                file_size=candidate.size,
                metadata={
                    "original_filename": candidate.filename,
                    "mime_type": candidate.content_type,
                },
            )

        return build

    @staticmethod
    def _url_source_factory(
        notebook_id: str, url: str, source_type: SourceType, title: str
    ) -> Callable[[], Source]:
        def build() -> Source:
            return Source(
                notebook_id=notebook_id,
                title=title,
                type=source_type,
                origin=SourceOrigin.URL,
                url=url,
                metadata={"domain": domain_label(url)},
            )

        return build
