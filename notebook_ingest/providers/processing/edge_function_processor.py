"""Content processing delegated to the hosted ``process-document`` function.

POSTs ``{"sourceId", "filePath", "sourceType"}`` to
``{supabase_url}/functions/v1/process-document``.  The function extracts
the content and writes it to the source row itself; this adapter only
reports whether the call succeeded.
"""

from __future__ import annotations

import httpx
import structlog

from notebook_ingest.interfaces.content_processor import IContentProcessor
from notebook_ingest.models.source import SourceType
from notebook_ingest.utils.errors import ContentProcessingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 120.0


class EdgeFunctionContentProcessor(IContentProcessor):
    """Invoke the hosted document-processing function over HTTP."""

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        function_name: str = "process-document",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = f"{supabase_url.rstrip('/')}/functions/v1/{function_name}"
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def process(
        self,
        source_id: str,
        file_path: str | None,
        source_type: SourceType,
    ) -> None:
        payload = {
            "sourceId": source_id,
            "filePath": file_path,
            "sourceType": source_type.value,
        }
        try:
            response = await self._client.post(self._endpoint, json=payload, headers=self._headers)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ContentProcessingError(
                message=f"Timeout processing source {source_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ContentProcessingError(
                message=f"HTTP {exc.response.status_code} processing source {source_id}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ContentProcessingError(
                message=f"HTTP error processing source {source_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("edge_function_processed", source_id=source_id, source_type=source_type.value)

    def get_provider_name(self) -> str:
        return "edge-function"
