"""Unit tests for structlog configuration and per-source log context."""

from __future__ import annotations

import asyncio
import logging

import pytest
import structlog

from notebook_ingest.utils.logging import (
    SERVICE_NAME,
    _add_service_name,
    configure_logging,
    ingestion_context,
)


@pytest.fixture(autouse=True)
def _restore_structlog():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# ======================================================================
# configure_logging
# ======================================================================


class TestConfigureLogging:
    def test_service_name_added(self) -> None:
        event_dict = _add_service_name(None, "info", {"event": "x"})

        assert event_dict["service"] == SERVICE_NAME

    def test_explicit_service_is_kept(self) -> None:
        event_dict = _add_service_name(None, "info", {"event": "x", "service": "other"})

        assert event_dict["service"] == "other"

    def test_library_loggers_quiet_at_info(self) -> None:
        configure_logging("INFO")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert structlog.is_configured()

    def test_library_loggers_follow_debug(self) -> None:
        configure_logging("debug")

        assert logging.getLogger("httpx").level == logging.DEBUG


# ======================================================================
# ingestion_context
# ======================================================================


class TestIngestionContext:
    def test_binds_and_unbinds_ids(self) -> None:
        with ingestion_context(notebook_id="nb-1", source_id="src-1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["notebook_id"] == "nb-1"
            assert bound["source_id"] == "src-1"

        assert "source_id" not in structlog.contextvars.get_contextvars()

    def test_empty_ids_are_skipped(self) -> None:
        with ingestion_context(notebook_id="nb-1", source_id=None):
            bound = structlog.contextvars.get_contextvars()

        assert bound == {"notebook_id": "nb-1"}

    @pytest.mark.asyncio
    async def test_concurrent_tasks_see_their_own_source(self) -> None:
        async def capture(source_id: str) -> str:
            with ingestion_context(source_id=source_id):
                await asyncio.sleep(0)
                return structlog.contextvars.get_contextvars()["source_id"]

        seen = await asyncio.gather(capture("a"), capture("b"), capture("c"))

        assert seen == ["a", "b", "c"]
