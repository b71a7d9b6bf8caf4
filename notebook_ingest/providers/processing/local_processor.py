"""In-process content extraction.

Extracts plain text from stored sources without any hosted function:

- **pdf** -- PyMuPDF (fitz), page by page.
- **text** -- UTF-8 decode of ``.txt`` / ``.md`` uploads; pasted text is
  already on the record.
- **website** -- httpx fetch + trafilatura main-content extraction.
- **audio**, **youtube**, Word documents -- not supported locally; raises
  :class:`ContentProcessingError` so the orchestrator's processing policy
  decides the outcome.

Extracted text is written back to the source's ``content`` column together
with an ``extracted_characters`` count in its metadata.
"""

from __future__ import annotations

import asyncio
from pathlib import PurePosixPath

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import httpx
import structlog
import trafilatura

from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.interfaces.content_processor import IContentProcessor
from notebook_ingest.interfaces.source_store import ISourceStore
from notebook_ingest.models.source import SourceType
from notebook_ingest.utils.errors import ContentProcessingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; notebook-ingest/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
_WORD_SUFFIXES = frozenset({".doc", ".docx"})


class LocalContentProcessor(IContentProcessor):
    """Text extraction backed by PyMuPDF, trafilatura and httpx."""

    def __init__(
        self,
        source_store: ISourceStore,
        blob_storage: IBlobStorage,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._source_store = source_store
        self._blob_storage = blob_storage
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # IContentProcessor implementation
    # ------------------------------------------------------------------

    async def process(
        self,
        source_id: str,
        file_path: str | None,
        source_type: SourceType,
    ) -> None:
        if source_type in (SourceType.AUDIO, SourceType.YOUTUBE):
            raise ContentProcessingError(
                message=f"{source_type.value} sources cannot be processed locally",
                provider_name=self.get_provider_name(),
            )

        if file_path is None:
            # Pasted text: the record already holds the content.
            logger.debug("content_already_present", source_id=source_id)
            return

        if source_type == SourceType.WEBSITE:
            text = await self._extract_website(file_path)
        elif source_type == SourceType.PDF:
            data = await self._blob_storage.download(file_path)
            text = await asyncio.to_thread(self._extract_pdf, data)
        else:
            if PurePosixPath(file_path).suffix.lower() in _WORD_SUFFIXES:
                raise ContentProcessingError(
                    message="Word documents cannot be processed locally",
                    provider_name=self.get_provider_name(),
                )
            data = await self._blob_storage.download(file_path)
            text = data.decode("utf-8", errors="replace")

        if not text.strip():
            raise ContentProcessingError(
                message=f"No extractable text in {file_path}",
                provider_name=self.get_provider_name(),
            )

        await self._store_text(source_id, text)
        logger.info(
            "content_extracted",
            source_id=source_id,
            source_type=source_type.value,
            text_length=len(text),
        )

    def get_provider_name(self) -> str:
        return "local-processor"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _extract_website(self, url: str) -> str:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ContentProcessingError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ContentProcessingError(
                message=f"HTTP {exc.response.status_code} for {url}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ContentProcessingError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = trafilatura.extract(response.text, include_comments=False, include_tables=True)
        if not text:
            logger.warning("trafilatura_extraction_empty", url=url)
            return ""
        return text

    def _extract_pdf(self, data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ContentProcessingError(
                message=f"Cannot open PDF: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        pages: list[str] = []
        try:
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
        finally:
            doc.close()
        return "\n\n".join(pages)

    async def _store_text(self, source_id: str, text: str) -> None:
        source = await self._source_store.get_source(source_id)
        if source is None:
            return
        await self._source_store.update_source(
            source_id,
            content=text,
            metadata={**source.metadata, "extracted_characters": len(text)},
        )
