"""Utility modules for notebook-ingest.

- **errors** -- Domain exception hierarchy rooted at NotebookIngestError;
  each pipeline stage raises its own subclass so callers can apply a
  per-stage failure policy.
- **concurrency** -- asyncio semaphore throttling and the wall-clock batch
  gate used by the orchestrator.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
"""

from notebook_ingest.utils.concurrency import settle_after, throttled_gather
from notebook_ingest.utils.errors import (
    ConfigurationError,
    ContentProcessingError,
    InvalidTransitionError,
    MetadataGenerationError,
    NotebookIngestError,
    NotebookNotFoundError,
    PipelineError,
    ProviderUnavailableError,
    RecordStoreError,
    SourceNotFoundError,
    UploadError,
    ValidationError,
)
from notebook_ingest.utils.logging import configure_logging, get_logger, ingestion_context

__all__ = [
    "ConfigurationError",
    "ContentProcessingError",
    "InvalidTransitionError",
    "MetadataGenerationError",
    "NotebookIngestError",
    "NotebookNotFoundError",
    "PipelineError",
    "ProviderUnavailableError",
    "RecordStoreError",
    "SourceNotFoundError",
    "UploadError",
    "ValidationError",
    "configure_logging",
    "get_logger",
    "ingestion_context",
    "settle_after",
    "throttled_gather",
]
