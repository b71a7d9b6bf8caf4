"""Integration tests for FastAPI API endpoints using TestClient."""

from __future__ import annotations

import io
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, UploadFile
from fastapi.testclient import TestClient

from notebook_ingest.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from notebook_ingest.api.routes import _UPLOAD_CHUNK_SIZE, _read_capped
from notebook_ingest.api.routes import router as api_router
from notebook_ingest.config.settings import Settings
from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.providers.store.memory_store import MemoryRecordStore
from notebook_ingest.utils.errors import UploadError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(
    orchestrator: IngestionOrchestrator,
    store: MemoryRecordStore,
    event_bus: IngestionEventBus,
) -> FastAPI:
    """Create a FastAPI app over an in-memory store and mocked providers."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router)

    app.state.orchestrator = orchestrator
    app.state.source_store = store
    app.state.notebook_store = store
    app.state.event_bus = event_bus
    app.state.settings = Settings(_env_file=None, supabase_url="", supabase_service_key="")
    app.state.provider_names = {
        "record_store": store.get_provider_name(),
        "blob_storage": "mock-storage",
        "content_processor": "mock-processor",
        "metadata_generator": "mock-generator",
    }
    return app


@pytest.fixture()
def make_client(
    make_orchestrator: Callable[..., IngestionOrchestrator],
    store: MemoryRecordStore,
    event_bus: IngestionEventBus,
) -> Callable[..., TestClient]:
    def _make(**orchestrator_overrides) -> TestClient:
        orchestrator = make_orchestrator(**orchestrator_overrides)
        return TestClient(_create_test_app(orchestrator, store, event_bus))

    return _make


@pytest.fixture()
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


def _new_notebook(client: TestClient, title: str | None = None) -> str:
    response = client.post("/api/v1/notebooks", json={"title": title})
    assert response.status_code == 201
    return response.json()["id"]


def _sources(client: TestClient, notebook_id: str) -> list[dict]:
    response = client.get(f"/api/v1/notebooks/{notebook_id}/sources")
    assert response.status_code == 200
    return response.json()["sources"]


# ======================================================================
# Health & notebooks
# ======================================================================


class TestHealthAndNotebooks:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["record_store"] == "memory"
        assert body["backends"] == []

    def test_create_and_get_notebook(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client, "Chemistry")

        response = client.get(f"/api/v1/notebooks/{notebook_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Chemistry"
        assert "metadata_claimed" not in body

    def test_unknown_notebook_is_404(self, client: TestClient) -> None:
        response = client.get("/api/v1/notebooks/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "NotebookNotFoundError"

    def test_unknown_notebook_sources_is_404(self, client: TestClient) -> None:
        assert client.get("/api/v1/notebooks/missing/sources").status_code == 404


# ======================================================================
# Add-actions
# ======================================================================


class TestAddSources:
    def test_upload_files(self, client: TestClient, metadata_generator: MagicMock) -> None:
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/files",
            files=[
                ("files", ("notes.pdf", b"%PDF-1.4 test", "application/pdf")),
                ("files", ("readme.md", b"# Title", "text/markdown")),
                ("files", ("photo.png", b"\x89PNG", "image/png")),
            ],
        )

        assert response.status_code == 202
        body = response.json()
        assert body["accepted"] == 2
        assert body["rejected"] == [{"filename": "photo.png", "reason": "unsupported file type"}]
        assert body["message"] == "2 sources queued for processing"

        sources = _sources(client, notebook_id)
        assert {s["title"] for s in sources} == {"notes.pdf", "readme.md"}
        assert {s["processing_status"] for s in sources} == {"completed"}
        assert all("content" not in s for s in sources)
        metadata_generator.generate.assert_awaited_once()

        notebook = client.get(f"/api/v1/notebooks/{notebook_id}").json()
        assert notebook["title"] == "Cell Biology"
        assert notebook["generation_status"] == "completed"

    def test_oversized_file_is_rejected(self, make_client: Callable[..., TestClient]) -> None:
        client = make_client(max_file_size=10)
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/files",
            files=[("files", ("big.pdf", b"x" * 11, "application/pdf"))],
        )

        assert response.status_code == 202
        body = response.json()
        assert body["accepted"] == 0
        assert body["rejected"][0]["reason"] == "exceeds size limit"
        assert _sources(client, notebook_id) == []

    def test_file_one_byte_over_limit_is_rejected(
        self, make_client: Callable[..., TestClient], blob_storage: MagicMock
    ) -> None:
        limit = 3 * _UPLOAD_CHUNK_SIZE
        client = make_client(max_file_size=limit)
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/files",
            files=[
                ("files", ("exact.txt", b"a" * limit, "text/plain")),
                ("files", ("over.txt", b"a" * (limit + 1), "text/plain")),
            ],
        )

        assert response.status_code == 202
        body = response.json()
        assert body["accepted"] == 1
        assert body["rejected"] == [{"filename": "over.txt", "reason": "exceeds size limit"}]
        assert [s["title"] for s in _sources(client, notebook_id)] == ["exact.txt"]
        blob_storage.upload.assert_awaited_once()

    def test_add_urls(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/urls",
            json={"urls": "https://a.example.com\nbogus\nhttps://www.b.example.com/x"},
        )

        assert response.status_code == 202
        assert response.json()["accepted"] == 2
        sources = _sources(client, notebook_id)
        assert [s["title"] for s in sources] == ["a.example.com", "b.example.com"]
        assert {s["type"] for s in sources} == {"website"}

    def test_add_urls_without_valid_line_is_422(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/urls", json={"urls": "nope\nstill nope"}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_add_youtube(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client)

        ok = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/youtube",
            json={"url": "https://youtu.be/dQw4w9WgXcQ"},
        )
        bad = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/youtube",
            json={"url": "https://vimeo.com/1"},
        )

        assert ok.status_code == 202
        assert bad.status_code == 422
        sources = _sources(client, notebook_id)
        assert len(sources) == 1
        assert sources[0]["type"] == "youtube"

    def test_add_text(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/text",
            json={"content": "Quarterly report\nRevenue grew."},
        )

        assert response.status_code == 202
        sources = _sources(client, notebook_id)
        assert sources[0]["title"] == "Quarterly report"
        assert sources[0]["metadata"]["character_count"] == len("Quarterly report\nRevenue grew.")

    def test_add_empty_text_is_422(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client)

        response = client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/text", json={"content": "   "}
        )

        assert response.status_code == 422

    def test_add_to_unknown_notebook_is_404(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/notebooks/missing/sources/text", json={"content": "hello"}
        )

        assert response.status_code == 404


# ======================================================================
# Source endpoints
# ======================================================================


class TestSourceEndpoints:
    def test_get_source_and_last_event(self, client: TestClient) -> None:
        notebook_id = _new_notebook(client)
        client.post(f"/api/v1/notebooks/{notebook_id}/sources/text", json={"content": "hi"})
        source_id = _sources(client, notebook_id)[0]["id"]

        source = client.get(f"/api/v1/sources/{source_id}")
        event = client.get(f"/api/v1/sources/{source_id}/events")

        assert source.status_code == 200
        assert source.json()["processing_status"] == "completed"
        assert event.status_code == 200
        assert event.json()["status"] == "completed"

    def test_unknown_source(self, client: TestClient) -> None:
        assert client.get("/api/v1/sources/missing").status_code == 404
        assert client.get("/api/v1/sources/missing/events").status_code == 404
        assert client.delete("/api/v1/sources/missing").status_code == 404

    def test_delete_source(self, client: TestClient, blob_storage: MagicMock) -> None:
        notebook_id = _new_notebook(client)
        client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/files",
            files=[("files", ("a.pdf", b"%PDF", "application/pdf"))],
        )
        source = _sources(client, notebook_id)[0]

        response = client.delete(f"/api/v1/sources/{source['id']}")

        assert response.status_code == 204
        blob_storage.delete.assert_awaited_once_with(source["file_path"])
        assert _sources(client, notebook_id) == []

    def test_retry_requires_file_when_upload_never_finished(
        self, client: TestClient, blob_storage: MagicMock
    ) -> None:
        original_upload = blob_storage.upload.side_effect
        blob_storage.upload.side_effect = UploadError(message="bucket offline")
        notebook_id = _new_notebook(client)
        client.post(
            f"/api/v1/notebooks/{notebook_id}/sources/files",
            files=[("files", ("a.pdf", b"%PDF", "application/pdf"))],
        )
        source = _sources(client, notebook_id)[0]
        assert source["processing_status"] == "failed"
        assert source["error_message"] == "bucket offline"
        blob_storage.upload.side_effect = original_upload

        conflict = client.post(f"/api/v1/sources/{source['id']}/retry")
        retried = client.post(
            f"/api/v1/sources/{source['id']}/retry",
            files={"file": ("a.pdf", b"%PDF", "application/pdf")},
        )

        assert conflict.status_code == 409
        assert conflict.json()["error"] == "PipelineError"
        assert retried.status_code == 200
        assert retried.json()["status"] == "completed"
        assert _sources(client, notebook_id)[0]["processing_status"] == "completed"


# ======================================================================
# Upload reading
# ======================================================================


class TestReadCapped:
    @pytest.mark.asyncio
    async def test_stops_reading_once_over_limit(self) -> None:
        payload = b"z" * (10 * _UPLOAD_CHUNK_SIZE)
        upload = UploadFile(file=io.BytesIO(payload), filename="huge.pdf")

        data, size = await _read_capped(upload, _UPLOAD_CHUNK_SIZE)

        assert data is None
        assert size == 2 * _UPLOAD_CHUNK_SIZE
        assert upload.file.tell() < len(payload)

    @pytest.mark.asyncio
    async def test_file_at_limit_is_returned_whole(self) -> None:
        payload = b"z" * (_UPLOAD_CHUNK_SIZE + 7)
        upload = UploadFile(file=io.BytesIO(payload), filename="ok.pdf")

        data, size = await _read_capped(upload, len(payload))

        assert data == payload
        assert size == len(payload)
