# =============================================================================
# notebook_ingest/cli/ingest.py -- Command-line ingestion
# =============================================================================
#
# Runs the same ingestion pipeline as the HTTP API, without a server. The
# components come from notebook_ingest.main.build_components, so the
# backends are selected by the same environment variables (.env) as the
# web app. With the defaults that means SQLite records in
# data/notebooks.db and blobs under data/blobs.
#
# Supported subcommands:
#
#   new-notebook -- Create an empty notebook and print its id
#   files        -- Add local files (PDF, text, Markdown, Word, MP3, WAV)
#   urls         -- Add website links (one per line, from args or a file)
#   youtube      -- Add a YouTube link
#   text         -- Add pasted text (from --content or a file)
#   list         -- List a notebook's sources and their status
#   retry        -- Manually retry a failed source
#
# Exit codes: 0 when every item completed, 1 on bad input (missing file,
# unknown notebook, no valid URL), 2 when any item was rejected or failed.
#
# Usage examples:
#   python -m notebook_ingest.cli new-notebook --title "Biology 101"
#   python -m notebook_ingest.cli files <notebook-id> notes.pdf lecture.mp3
#   python -m notebook_ingest.cli urls <notebook-id> --file links.txt
#   python -m notebook_ingest.cli --json list <notebook-id>
# =============================================================================

"""Standalone CLI for adding sources to a notebook.

Usage::

    python -m notebook_ingest.cli new-notebook --title "Biology 101"
    python -m notebook_ingest.cli files <notebook-id> notes.pdf
    python -m notebook_ingest.cli urls <notebook-id> https://example.com
    python -m notebook_ingest.cli text <notebook-id> --content "..."
    python -m notebook_ingest.cli list <notebook-id>
    python -m notebook_ingest.cli retry <source-id> --file notes.pdf
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from typing import Any

from notebook_ingest.config.settings import Settings
from notebook_ingest.models.pipeline import BatchResult, ItemOutcome
from notebook_ingest.models.source import FileCandidate
from notebook_ingest.pipeline.reporting import format_file_size, summarize_batch
from notebook_ingest.utils.errors import NotebookIngestError

# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def _format_batch_text(result: BatchResult) -> str:
    summary = summarize_batch(result)
    lines = [summary.title, f"  {summary.description}", ""]
    for item in summary.items:
        line = f"  [{item.state}] {item.name}"
        if item.source_id:
            line += f"  ({item.source_id})"
        lines.append(line)
        if item.detail:
            lines.append(f"      {item.detail}")
    return "\n".join(lines)


def _format_batch_json(result: BatchResult) -> str:
    summary = summarize_batch(result)
    payload = {
        "notebook_id": result.notebook_id,
        "summary": summary.model_dump(mode="json"),
        "outcomes": [o.model_dump(mode="json") for o in result.outcomes],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _format_outcome_text(outcome: ItemOutcome) -> str:
    status = outcome.status.value if outcome.status else "unknown"
    text = f"{outcome.name}: {status}"
    if outcome.skipped:
        text += " (nothing to do)"
    if outcome.error:
        text += f"\n  {outcome.error}"
    return text


def _emit(args: argparse.Namespace, text: str, data: Any) -> None:
    if args.json:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(text)


def _emit_batch(args: argparse.Namespace, result: BatchResult) -> int:
    print(_format_batch_json(result) if args.json else _format_batch_text(result))
    return 0 if result.failure_count == 0 else 2


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _read_candidate(path: Path) -> FileCandidate:
    content_type = mimetypes.guess_type(path.name)[0] or ""
    return FileCandidate.from_bytes(path.name, path.read_bytes(), content_type)


async def _handle_new_notebook(args: argparse.Namespace, components: dict[str, Any]) -> int:
    notebook = await components["orchestrator"].create_notebook(args.title)
    _emit(args, f"Created notebook {notebook.id} ({notebook.title})", notebook.model_dump(mode="json"))
    return 0


async def _handle_files(args: argparse.Namespace, components: dict[str, Any]) -> int:
    candidates: list[FileCandidate] = []
    for raw in args.paths:
        path = Path(raw)
        if not path.is_file():
            print(f"Error: File not found: {raw}", file=sys.stderr)
            return 1
        candidates.append(_read_candidate(path))

    result = await components["orchestrator"].ingest_files(args.notebook_id, candidates)
    return _emit_batch(args, result)


async def _handle_urls(args: argparse.Namespace, components: dict[str, Any]) -> int:
    lines = list(args.urls)
    if args.file:
        lines.append(Path(args.file).read_text(encoding="utf-8"))
    result = await components["orchestrator"].ingest_urls(args.notebook_id, "\n".join(lines))
    return _emit_batch(args, result)


async def _handle_youtube(args: argparse.Namespace, components: dict[str, Any]) -> int:
    result = await components["orchestrator"].ingest_youtube(args.notebook_id, args.url)
    return _emit_batch(args, result)


async def _handle_text(args: argparse.Namespace, components: dict[str, Any]) -> int:
    content = args.content
    if args.file:
        content = Path(args.file).read_text(encoding="utf-8")
    if content is None:
        print("Error: provide --content or --file", file=sys.stderr)
        return 1
    result = await components["orchestrator"].ingest_text(args.notebook_id, content, args.title)
    return _emit_batch(args, result)


async def _handle_list(args: argparse.Namespace, components: dict[str, Any]) -> int:
    notebook = await components["notebook_store"].get_notebook(args.notebook_id)
    if notebook is None:
        print(f"Error: Notebook not found: {args.notebook_id}", file=sys.stderr)
        return 1
    sources = await components["source_store"].list_sources(args.notebook_id)

    lines = [f"{notebook.icon or ''} {notebook.title}".strip(), f"  {len(sources)} source(s)", ""]
    for source in sources:
        lines.append(
            f"  {source.processing_status.value:<10} {source.type.value:<8} "
            f"{format_file_size(source.file_size):>9}  {source.display_name}  ({source.id})"
        )
        if source.error_message:
            lines.append(f"      {source.error_message}")
    data = {
        "notebook": notebook.model_dump(mode="json"),
        "sources": [s.model_dump(mode="json", exclude={"content"}) for s in sources],
    }
    _emit(args, "\n".join(lines), data)
    return 0


async def _handle_retry(args: argparse.Namespace, components: dict[str, Any]) -> int:
    data: bytes | None = None
    content_type = ""
    if args.file:
        path = Path(args.file)
        data = path.read_bytes()
        content_type = mimetypes.guess_type(path.name)[0] or ""
    outcome = await components["orchestrator"].retry_source(
        args.source_id, data=data, content_type=content_type
    )
    _emit(args, _format_outcome_text(outcome), outcome.model_dump(mode="json"))
    return 0 if outcome.succeeded else 2


_HANDLERS = {
    "new-notebook": _handle_new_notebook,
    "files": _handle_files,
    "urls": _handle_urls,
    "youtube": _handle_youtube,
    "text": _handle_text,
    "list": _handle_list,
    "retry": _handle_retry,
}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m notebook_ingest.cli",
        description="Add sources to a notebook and inspect their ingestion status.",
    )
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    nb_parser = subparsers.add_parser("new-notebook", help="Create an empty notebook")
    nb_parser.add_argument("--title", default=None, help="Notebook title")

    files_parser = subparsers.add_parser("files", help="Add local files")
    files_parser.add_argument("notebook_id", help="Target notebook id")
    files_parser.add_argument("paths", nargs="+", help="Files to add")

    urls_parser = subparsers.add_parser("urls", help="Add website links")
    urls_parser.add_argument("notebook_id", help="Target notebook id")
    urls_parser.add_argument("urls", nargs="*", help="URLs to add")
    urls_parser.add_argument("--file", default=None, help="Text file with one URL per line")

    yt_parser = subparsers.add_parser("youtube", help="Add a YouTube link")
    yt_parser.add_argument("notebook_id", help="Target notebook id")
    yt_parser.add_argument("url", help="YouTube URL")

    text_parser = subparsers.add_parser("text", help="Add pasted text")
    text_parser.add_argument("notebook_id", help="Target notebook id")
    text_parser.add_argument("--content", default=None, help="Text to add")
    text_parser.add_argument("--file", default=None, help="Read the text from this file")
    text_parser.add_argument("--title", default=None, help="Source title")

    list_parser = subparsers.add_parser("list", help="List a notebook's sources")
    list_parser.add_argument("notebook_id", help="Notebook id")

    retry_parser = subparsers.add_parser("retry", help="Retry a failed source")
    retry_parser.add_argument("source_id", help="Source id")
    retry_parser.add_argument(
        "--file", default=None, help="Original file, needed when the upload never finished"
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def run(args: argparse.Namespace, app_settings: Settings) -> int:
    """Build the components, dispatch one subcommand, and clean up."""
    # Deferred so that --help does not configure providers.
    from notebook_ingest.main import build_components, initialize_components

    components = build_components(app_settings)
    try:
        await initialize_components(components)
        return await _HANDLERS[args.command](args, components)
    except NotebookIngestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components["http_client"].aclose()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    exit_code = asyncio.run(run(args, Settings()))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
