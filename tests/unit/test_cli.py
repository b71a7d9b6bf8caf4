"""Unit tests for the ingestion CLI (notebook_ingest.cli.ingest)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from notebook_ingest.cli.ingest import (
    _HANDLERS,
    _build_parser,
    _format_batch_text,
    main,
)
from notebook_ingest.models.notebook import Notebook
from notebook_ingest.models.pipeline import BatchResult, ItemOutcome
from notebook_ingest.models.source import FileCandidate, ProcessingStatus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.providers.store.memory_store import MemoryRecordStore
from notebook_ingest.utils.errors import UploadError

# ======================================================================
# Parser
# ======================================================================


class TestParser:
    def test_files_subcommand(self) -> None:
        args = _build_parser().parse_args(["files", "nb-1", "a.pdf", "b.txt"])

        assert args.command == "files"
        assert args.notebook_id == "nb-1"
        assert args.paths == ["a.pdf", "b.txt"]
        assert args.json is False

    def test_files_requires_a_path(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["files", "nb-1"])

    def test_global_json_flag(self) -> None:
        args = _build_parser().parse_args(["--json", "list", "nb-1"])

        assert args.json is True
        assert args.command == "list"

    def test_urls_from_args_and_file(self) -> None:
        args = _build_parser().parse_args(
            ["urls", "nb-1", "https://a.example.com", "--file", "links.txt"]
        )

        assert args.urls == ["https://a.example.com"]
        assert args.file == "links.txt"

    def test_text_options(self) -> None:
        args = _build_parser().parse_args(["text", "nb-1", "--content", "hi", "--title", "T"])

        assert (args.content, args.title, args.file) == ("hi", "T", None)

    def test_retry_with_file(self) -> None:
        args = _build_parser().parse_args(["retry", "src-1", "--file", "notes.pdf"])

        assert args.source_id == "src-1"
        assert args.file == "notes.pdf"

    def test_every_subcommand_has_a_handler(self) -> None:
        parser = _build_parser()
        subparsers = next(
            action for action in parser._actions if action.dest == "command"
        )

        assert set(subparsers.choices) == set(_HANDLERS)

    def test_no_command_prints_help_and_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "usage" in capsys.readouterr().out.lower()


# ======================================================================
# Formatting
# ======================================================================


class TestFormatting:
    def test_batch_text_lists_each_item(self) -> None:
        result = BatchResult(
            notebook_id="nb-1",
            outcomes=[
                ItemOutcome(name="a.pdf", source_id="s1", status=ProcessingStatus.COMPLETED),
                ItemOutcome(name="b.png", rejected=True, error="unsupported file type"),
            ],
        )

        text = _format_batch_text(result)

        assert text.splitlines()[0] == "Some sources could not be added"
        assert "[completed] a.pdf  (s1)" in text
        assert "[rejected] b.png" in text
        assert "unsupported file type" in text


# ======================================================================
# Handlers
# ======================================================================


class TestHandlers:
    @pytest.fixture()
    def components(
        self, orchestrator: IngestionOrchestrator, store: MemoryRecordStore
    ) -> dict[str, Any]:
        return {
            "orchestrator": orchestrator,
            "source_store": store,
            "notebook_store": store,
        }

    async def _run(self, argv: list[str], components: dict[str, Any]) -> int:
        args = _build_parser().parse_args(argv)
        return await _HANDLERS[args.command](args, components)

    @pytest.mark.asyncio
    async def test_new_notebook(
        self,
        components: dict[str, Any],
        store: MemoryRecordStore,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = await self._run(["--json", "new-notebook", "--title", "Physics"], components)

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        created = await store.get_notebook(payload["id"])
        assert created is not None
        assert created.title == "Physics"

    @pytest.mark.asyncio
    async def test_files(
        self,
        components: dict[str, Any],
        notebook: Notebook,
        store: MemoryRecordStore,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        pdf = tmp_path / "notes.pdf"
        pdf.write_bytes(b"%PDF-1.4 test")
        txt = tmp_path / "todo.txt"
        txt.write_text("buy milk")

        code = await self._run(["files", notebook.id, str(pdf), str(txt)], components)

        assert code == 0
        assert "Sources added" in capsys.readouterr().out
        sources = await store.list_sources(notebook.id)
        assert {s.title for s in sources} == {"notes.pdf", "todo.txt"}

    @pytest.mark.asyncio
    async def test_files_with_rejection_exits_2(
        self, components: dict[str, Any], notebook: Notebook, tmp_path: Path
    ) -> None:
        image = tmp_path / "photo.png"
        image.write_bytes(b"\x89PNG")

        assert await self._run(["files", notebook.id, str(image)], components) == 2

    @pytest.mark.asyncio
    async def test_missing_file(
        self,
        components: dict[str, Any],
        notebook: Notebook,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = await self._run(["files", notebook.id, "/does/not/exist.pdf"], components)

        assert code == 1
        assert "File not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_urls_from_file(
        self,
        components: dict[str, Any],
        notebook: Notebook,
        store: MemoryRecordStore,
        tmp_path: Path,
    ) -> None:
        links = tmp_path / "links.txt"
        links.write_text("https://b.example.com\nnot a url\n")

        code = await self._run(
            ["urls", notebook.id, "https://a.example.com", "--file", str(links)], components
        )

        assert code == 0
        sources = await store.list_sources(notebook.id)
        assert [s.url for s in sources] == ["https://a.example.com", "https://b.example.com"]

    @pytest.mark.asyncio
    async def test_text_requires_content(
        self, components: dict[str, Any], notebook: Notebook
    ) -> None:
        assert await self._run(["text", notebook.id], components) == 1

    @pytest.mark.asyncio
    async def test_list(
        self,
        components: dict[str, Any],
        notebook: Notebook,
        orchestrator: IngestionOrchestrator,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        await orchestrator.ingest_text(notebook.id, "Chapter one\nIt was a dark night.")
        capsys.readouterr()

        code = await self._run(["--json", "list", notebook.id], components)

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert len(payload["sources"]) == 1
        assert payload["sources"][0]["title"] == "Chapter one"
        assert "content" not in payload["sources"][0]

    @pytest.mark.asyncio
    async def test_list_unknown_notebook(self, components: dict[str, Any]) -> None:
        assert await self._run(["list", "missing"], components) == 1

    @pytest.mark.asyncio
    async def test_retry_completed_source_reports_nothing_to_do(
        self,
        components: dict[str, Any],
        notebook: Notebook,
        orchestrator: IngestionOrchestrator,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        result = await orchestrator.ingest_text(notebook.id, "hello")
        capsys.readouterr()

        code = await self._run(["retry", result.source_ids[0]], components)

        assert code == 0
        assert "nothing to do" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_retry_that_fails_again_exits_2(
        self,
        components: dict[str, Any],
        notebook: Notebook,
        orchestrator: IngestionOrchestrator,
        blob_storage: MagicMock,
        tmp_path: Path,
    ) -> None:
        blob_storage.upload.side_effect = UploadError(message="bucket offline")
        pdf = tmp_path / "notes.pdf"
        pdf.write_bytes(b"%PDF-1.4 test")
        candidate = FileCandidate.from_bytes("notes.pdf", pdf.read_bytes(), "application/pdf")
        result = await orchestrator.ingest_files(notebook.id, [candidate])

        code = await self._run(["retry", result.source_ids[0], "--file", str(pdf)], components)

        assert code == 2
