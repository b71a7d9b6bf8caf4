"""notebook-ingest FastAPI application entry point.

Wires record stores, blob storage, content processing and metadata
generation into an :class:`IngestionOrchestrator` via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

``build_components`` is also used by the CLI to run the same pipeline
outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from notebook_ingest.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from notebook_ingest.api.routes import router as api_router
from notebook_ingest.config.loader import load_config, stage_policies_from_config
from notebook_ingest.config.settings import Settings
from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.interfaces.content_processor import IContentProcessor
from notebook_ingest.interfaces.metadata_generator import IMetadataGenerator
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.providers.metadata.simple_generator import SimpleMetadataGenerator
from notebook_ingest.providers.metadata.web_service_generator import WebServiceMetadataGenerator
from notebook_ingest.providers.processing.edge_function_processor import (
    EdgeFunctionContentProcessor,
)
from notebook_ingest.providers.processing.local_processor import LocalContentProcessor
from notebook_ingest.providers.storage.local_storage import LocalBlobStorage
from notebook_ingest.providers.storage.supabase_storage import SupabaseBlobStorage
from notebook_ingest.providers.store.memory_store import MemoryRecordStore
from notebook_ingest.providers.store.sqlite_store import SQLiteRecordStore
from notebook_ingest.providers.store.supabase_store import SupabaseRecordStore
from notebook_ingest.utils.errors import ConfigurationError
from notebook_ingest.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _require_supabase(app_settings: Settings, purpose: str) -> None:
    if not (app_settings.supabase_url and app_settings.supabase_service_key):
        raise ConfigurationError(
            message=f"{purpose} requires SUPABASE_URL and SUPABASE_SERVICE_KEY",
        )


def _build_record_store(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> MemoryRecordStore | SQLiteRecordStore | SupabaseRecordStore:
    choice = app_settings.record_store.lower()
    if choice == "memory":
        return MemoryRecordStore()
    if choice == "sqlite":
        return SQLiteRecordStore(db_path=app_settings.sqlite_db_path)
    if choice == "supabase":
        _require_supabase(app_settings, "RECORD_STORE=supabase")
        return SupabaseRecordStore(
            app_settings.supabase_url,
            app_settings.supabase_service_key,
            http_client=http_client,
        )
    raise ConfigurationError(message=f"Unknown RECORD_STORE: {app_settings.record_store!r}")


def _build_blob_storage(app_settings: Settings, http_client: httpx.AsyncClient) -> IBlobStorage:
    choice = app_settings.blob_storage.lower()
    if choice == "local":
        return LocalBlobStorage(root=app_settings.local_storage_root)
    if choice == "supabase":
        _require_supabase(app_settings, "BLOB_STORAGE=supabase")
        return SupabaseBlobStorage(
            app_settings.supabase_url,
            app_settings.supabase_service_key,
            bucket=app_settings.supabase_bucket,
            http_client=http_client,
        )
    raise ConfigurationError(message=f"Unknown BLOB_STORAGE: {app_settings.blob_storage!r}")


def _build_content_processor(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    source_store: ISourceStore,
    blob_storage: IBlobStorage,
) -> IContentProcessor:
    choice = app_settings.content_processor.lower()
    if choice == "local":
        return LocalContentProcessor(source_store, blob_storage, http_client=http_client)
    if choice == "edge_function":
        _require_supabase(app_settings, "CONTENT_PROCESSOR=edge_function")
        return EdgeFunctionContentProcessor(
            app_settings.supabase_url,
            app_settings.supabase_service_key,
            http_client=http_client,
        )
    raise ConfigurationError(
        message=f"Unknown CONTENT_PROCESSOR: {app_settings.content_processor!r}"
    )


def _build_metadata_generator(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> IMetadataGenerator:
    # Without a configured service the offline generator is used.
    if app_settings.notebook_generation_url and app_settings.notebook_generation_auth:
        return WebServiceMetadataGenerator(
            app_settings.notebook_generation_url,
            auth_header=app_settings.notebook_generation_auth,
            http_client=http_client,
        )
    return SimpleMetadataGenerator()


def build_components(
    app_settings: Settings | None = None,
    config_path: str = "config/config.yaml",
) -> dict[str, Any]:
    """Construct every provider and the orchestrator.

    Returns a flat dict of named components to be stored on ``app.state``.

    Raises
    ------
    ConfigurationError
        If a selected backend is unknown or lacks credentials.
    """
    app_settings = app_settings or settings
    config = load_config(config_path, settings=app_settings)
    pipeline_config = config.get("pipeline", {})

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(app_settings.http_timeout_seconds),
        follow_redirects=True,
    )

    record_store = _build_record_store(app_settings, http_client)
    blob_storage = _build_blob_storage(app_settings, http_client)
    content_processor = _build_content_processor(
        app_settings, http_client, record_store, blob_storage
    )
    metadata_generator = _build_metadata_generator(app_settings, http_client)
    event_bus = IngestionEventBus()

    orchestrator = IngestionOrchestrator(
        source_store=record_store,
        notebook_store=record_store,
        blob_storage=blob_storage,
        content_processor=content_processor,
        metadata_generator=metadata_generator,
        event_bus=event_bus,
        policies=stage_policies_from_config(config),
        max_file_size=int(pipeline_config.get("max_file_size_bytes", app_settings.max_file_size_bytes)),
        gate_delay_seconds=float(
            pipeline_config.get("gate_delay_seconds", app_settings.batch_gate_delay_seconds)
        ),
        max_concurrent_items=int(
            pipeline_config.get("max_concurrent_items", app_settings.max_concurrent_items)
        ),
    )

    return {
        "settings": app_settings,
        "config": config,
        "http_client": http_client,
        "source_store": record_store,
        "notebook_store": record_store,
        "blob_storage": blob_storage,
        "content_processor": content_processor,
        "metadata_generator": metadata_generator,
        "event_bus": event_bus,
        "orchestrator": orchestrator,
        "provider_names": {
            "record_store": record_store.get_provider_name(),
            "blob_storage": blob_storage.get_provider_name(),
            "content_processor": content_processor.get_provider_name(),
            "metadata_generator": metadata_generator.get_provider_name(),
        },
    }


async def initialize_components(components: dict[str, Any]) -> None:
    """Run async start-up hooks (table creation for SQLite)."""
    store = components["source_store"]
    if isinstance(store, SQLiteRecordStore):
        await store.initialize()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers on startup, clean up on shutdown."""
    components = build_components(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await initialize_components(components)

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        **components["provider_names"],
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="notebook-ingest API",
        version=_VERSION,
        description=(
            "Add PDFs, text, audio, website links, YouTube links and pasted "
            "text to a notebook; each source is validated, stored, processed "
            "and tracked through its ingestion status."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "notebook_ingest.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
