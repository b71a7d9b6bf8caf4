"""Notebook metadata generation through an external web service.

POSTs the triggering source to ``NOTEBOOK_GENERATION_URL`` and expects::

    {"output": {"title": ..., "summary": ..., "notebook_icon": ...,
                "background_color": ..., "example_questions": [...]}}

Sources with a path (files, links) send ``filePath``; pasted text sends the
first 5000 characters as ``content``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from notebook_ingest.interfaces.metadata_generator import IMetadataGenerator
from notebook_ingest.models.notebook import NotebookMetadata
from notebook_ingest.models.source import SourceType
from notebook_ingest.utils.errors import MetadataGenerationError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 60.0
_MAX_CONTENT_CHARS = 5000
_DEFAULT_ICON = "📝"
_DEFAULT_COLOR = "bg-gray-100"


class WebServiceMetadataGenerator(IMetadataGenerator):
    """HTTP-backed :class:`IMetadataGenerator`.

    Parameters
    ----------
    endpoint:
        Full URL of the generation service.
    auth_header:
        Value sent verbatim as the ``Authorization`` header.
    http_client:
        Optional shared client; one is created (and owned) when omitted.
    """

    def __init__(
        self,
        endpoint: str,
        auth_header: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = {"Content-Type": "application/json"}
        if auth_header:
            self._headers["Authorization"] = auth_header
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def generate(
        self,
        notebook_id: str,
        file_path: str | None,
        source_type: SourceType,
        content: str | None = None,
    ) -> NotebookMetadata:
        payload: dict[str, Any] = {"sourceType": source_type.value}
        if file_path:
            payload["filePath"] = file_path
        elif content:
            payload["content"] = content[:_MAX_CONTENT_CHARS]

        try:
            response = await self._client.post(self._endpoint, json=payload, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise MetadataGenerationError(
                message=f"Generation service returned {exc.response.status_code}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise MetadataGenerationError(
                message=f"Generation service unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except ValueError as exc:
            raise MetadataGenerationError(
                message="Generation service returned invalid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

        output = data.get("output") if isinstance(data, dict) else None
        if not isinstance(output, dict):
            raise MetadataGenerationError(
                message="Invalid response format from generation service",
                provider_name=self.get_provider_name(),
            )
        if not output.get("title"):
            raise MetadataGenerationError(
                message="No title in response from generation service",
                provider_name=self.get_provider_name(),
            )

        questions = output.get("example_questions") or []
        logger.info(
            "notebook_metadata_generated",
            notebook_id=notebook_id,
            title=output["title"],
            example_questions=len(questions),
        )
        return NotebookMetadata(
            title=str(output["title"]),
            description=output.get("summary") or None,
            icon=output.get("notebook_icon") or _DEFAULT_ICON,
            color=output.get("background_color") or _DEFAULT_COLOR,
            example_questions=[str(q) for q in questions],
        )

    def get_provider_name(self) -> str:
        return "web-service"
