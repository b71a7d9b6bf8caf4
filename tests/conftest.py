"""Shared pytest fixtures for the notebook-ingest test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.interfaces.content_processor import IContentProcessor
from notebook_ingest.interfaces.metadata_generator import IMetadataGenerator
from notebook_ingest.models.notebook import Notebook, NotebookMetadata
from notebook_ingest.models.pipeline import IngestionEvent, StagePolicies
from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.providers.storage.local_storage import blob_path
from notebook_ingest.providers.store.memory_store import MemoryRecordStore

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest_asyncio.fixture()
async def notebook(store: MemoryRecordStore) -> Notebook:
    return await store.create_notebook(Notebook())


@pytest.fixture()
def blob_storage() -> MagicMock:
    storage = MagicMock(spec=IBlobStorage)

    async def _upload(
        data: bytes, notebook_id: str, source_id: str, filename: str, content_type: str = ""
    ) -> str:
        return blob_path(notebook_id, source_id, filename)

    storage.upload.side_effect = _upload
    storage.get_provider_name.return_value = "mock-storage"
    return storage


@pytest.fixture()
def content_processor() -> MagicMock:
    processor = MagicMock(spec=IContentProcessor)
    processor.process.return_value = None
    processor.get_provider_name.return_value = "mock-processor"
    return processor


@pytest.fixture()
def metadata_generator() -> MagicMock:
    generator = MagicMock(spec=IMetadataGenerator)
    generator.generate.return_value = NotebookMetadata(
        title="Cell Biology",
        description="Notes about cells.",
        icon="🧬",
        color="bg-green-100",
        example_questions=["What is a ribosome?"],
    )
    generator.get_provider_name.return_value = "mock-generator"
    return generator


@pytest.fixture()
def event_bus() -> IngestionEventBus:
    return IngestionEventBus()


@pytest.fixture()
def recorded_events(event_bus: IngestionEventBus) -> list[IngestionEvent]:
    """Every event published on ``event_bus``, in order."""
    events: list[IngestionEvent] = []
    event_bus.register_listener(IngestionEventBus.ALL_NOTEBOOKS, events.append)
    return events


@pytest.fixture()
def make_orchestrator(
    store: MemoryRecordStore,
    blob_storage: MagicMock,
    content_processor: MagicMock,
    metadata_generator: MagicMock,
    event_bus: IngestionEventBus,
) -> Callable[..., IngestionOrchestrator]:
    """Factory building an orchestrator over the shared fixtures.

    Keyword arguments override any constructor argument.  The gate delay
    defaults to zero so tests that do not exercise it stay fast.
    """

    def _make(**overrides: Any) -> IngestionOrchestrator:
        kwargs: dict[str, Any] = {
            "source_store": store,
            "notebook_store": store,
            "blob_storage": blob_storage,
            "content_processor": content_processor,
            "metadata_generator": metadata_generator,
            "event_bus": event_bus,
            "policies": StagePolicies(),
            "gate_delay_seconds": 0.0,
        }
        kwargs.update(overrides)
        return IngestionOrchestrator(**kwargs)

    return _make


@pytest.fixture()
def orchestrator(make_orchestrator: Callable[..., IngestionOrchestrator]) -> IngestionOrchestrator:
    return make_orchestrator()
