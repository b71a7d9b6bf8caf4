"""End-to-end tests: SQLite records, filesystem blobs, local processing.

No mocks except the HTTP transport used for website fetches.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import fitz
import httpx
import pytest
import pytest_asyncio

from notebook_ingest.models.notebook import GenerationStatus
from notebook_ingest.models.pipeline import FailurePolicy, IngestionEvent, StagePolicies
from notebook_ingest.models.source import FileCandidate, ProcessingStatus, SourceType
from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.pipeline.reporting import SummaryVariant, summarize_batch
from notebook_ingest.providers.metadata.simple_generator import SimpleMetadataGenerator
from notebook_ingest.providers.processing.local_processor import LocalContentProcessor
from notebook_ingest.providers.storage.local_storage import LocalBlobStorage
from notebook_ingest.providers.store.sqlite_store import SQLiteRecordStore

PARAGRAPH = (
    "Plate tectonics describes the large-scale motion of the plates making up the "
    "lithosphere of the Earth. The model builds on the concept of continental drift, "
    "an idea developed during the first decades of the twentieth century, and was "
    "accepted by geoscientists after sea-floor spreading was validated in the 1960s."
)
PAGE_HTML = (
    f"<html><head><title>Tectonics</title></head><body><article>"
    f"<h1>Plate tectonics</h1><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p>"
    f"</article></body></html>"
)


def _pdf_bytes(text: str) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "geo.example.com":
        return httpx.Response(200, text=PAGE_HTML, headers={"Content-Type": "text/html"})
    return httpx.Response(503)


class Harness:
    """Real providers wired the way ``build_components`` wires them."""

    def __init__(self, root: Path, policies: StagePolicies | None = None) -> None:
        self.store = SQLiteRecordStore(root / "records.db")
        self.storage = LocalBlobStorage(root / "blobs")
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
        self.processor = LocalContentProcessor(self.store, self.storage, http_client=self.client)
        self.bus = IngestionEventBus()
        self.events: list[IngestionEvent] = []
        self.bus.register_listener(IngestionEventBus.ALL_NOTEBOOKS, self.events.append)
        self.orchestrator = IngestionOrchestrator(
            source_store=self.store,
            notebook_store=self.store,
            blob_storage=self.storage,
            content_processor=self.processor,
            metadata_generator=SimpleMetadataGenerator(),
            event_bus=self.bus,
            policies=policies,
            gate_delay_seconds=0.02,
        )


@pytest_asyncio.fixture()
async def harness(tmp_path: Path) -> AsyncIterator[Harness]:
    h = Harness(tmp_path)
    await h.store.initialize()
    yield h
    await h.client.aclose()


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_mixed_file_batch(self, harness: Harness, tmp_path: Path) -> None:
        notebook = await harness.orchestrator.create_notebook()
        files = [
            FileCandidate.from_bytes("Tectonics.pdf", _pdf_bytes("Continental drift"), "application/pdf"),
            FileCandidate.from_bytes("notes.txt", b"Subduction zones", "text/plain"),
            FileCandidate.from_bytes("talk.mp3", b"ID3", "audio/mpeg"),
            FileCandidate(filename="huge.pdf", content_type="application/pdf", size=60 * 1024 * 1024),
        ]

        result = await harness.orchestrator.ingest_files(notebook.id, files)

        assert result.total == 4
        assert result.success_count == 3
        assert result.failure_count == 1
        assert result.outcomes[3].rejected is True
        # Audio cannot be processed locally; the default policy still completes it.
        assert result.outcomes[2].degraded is True

        sources = {s.title: s for s in await harness.store.list_sources(notebook.id)}
        assert set(sources) == {"Tectonics.pdf", "notes.txt", "talk.mp3"}
        assert "Continental drift" in (sources["Tectonics.pdf"].content or "")
        assert sources["notes.txt"].content == "Subduction zones"
        assert sources["talk.mp3"].metadata["processing_degraded"] is True
        for source in sources.values():
            assert source.processing_status == ProcessingStatus.COMPLETED
            assert (tmp_path / "blobs" / source.file_path).exists()

        updated = await harness.store.get_notebook(notebook.id)
        assert updated is not None
        assert updated.title == "Tectonics"
        assert updated.generation_status == GenerationStatus.COMPLETED

        summary = summarize_batch(result)
        assert summary.variant == SummaryVariant.DESTRUCTIVE
        assert summary.description == "3 of 4 sources added; 1 failed"

    @pytest.mark.asyncio
    async def test_links_and_text(self, harness: Harness) -> None:
        notebook = await harness.orchestrator.create_notebook("Geology")

        links = await harness.orchestrator.ingest_urls(
            notebook.id, "https://geo.example.com/plates\nhttps://down.example.com/x"
        )
        text = await harness.orchestrator.ingest_text(notebook.id, "Field trip\nBring boots.")

        assert links.success_count == 2
        assert text.success_count == 1
        sources = await harness.store.list_sources(notebook.id)
        assert [s.type for s in sources] == [SourceType.WEBSITE, SourceType.WEBSITE, SourceType.TEXT]
        assert "continental drift" in (sources[0].content or "")
        assert sources[1].metadata["processing_degraded"] is True
        assert sources[2].content == "Field trip\nBring boots."

        updated = await harness.store.get_notebook(notebook.id)
        assert updated is not None
        assert updated.title == "geo.example.com"

    @pytest.mark.asyncio
    async def test_fail_policy_and_retry(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, StagePolicies(processing=FailurePolicy.FAIL))
        await harness.store.initialize()
        try:
            notebook = await harness.orchestrator.create_notebook()
            result = await harness.orchestrator.ingest_files(
                notebook.id, [FileCandidate.from_bytes("blank.txt", b"   ", "text/plain")]
            )
            source_id = result.source_ids[0]

            failed = await harness.store.get_source(source_id)
            assert failed is not None
            assert failed.processing_status == ProcessingStatus.FAILED
            assert "No extractable text" in (failed.error_message or "")
            assert failed.file_path is not None

            await harness.storage.upload(b"now with words", notebook.id, source_id, "blank.txt")
            outcome = await harness.orchestrator.retry_source(source_id)

            assert outcome.status == ProcessingStatus.COMPLETED
            retried = await harness.store.get_source(source_id)
            assert retried is not None
            assert retried.content == "now with words"
            assert retried.error_message is None
        finally:
            await harness.client.aclose()

    @pytest.mark.asyncio
    async def test_delete_removes_blob(self, harness: Harness, tmp_path: Path) -> None:
        notebook = await harness.orchestrator.create_notebook()
        result = await harness.orchestrator.ingest_files(
            notebook.id, [FileCandidate.from_bytes("a.txt", b"alpha", "text/plain")]
        )
        source = await harness.store.get_source(result.source_ids[0])
        assert source is not None and source.file_path is not None

        assert await harness.orchestrator.delete_source(source.id) is True

        assert not (tmp_path / "blobs" / source.file_path).exists()
        assert await harness.store.list_sources(notebook.id) == []
