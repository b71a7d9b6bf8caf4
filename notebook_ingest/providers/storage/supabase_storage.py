"""Blob storage backed by the Supabase Storage API.

Objects live in one bucket at ``{notebook_id}/{source_id}-{filename}``.
Uploads use ``POST /storage/v1/object/{bucket}/{path}`` with the declared
media type; downloads and deletes hit the same object URL.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.providers.storage.local_storage import blob_path
from notebook_ingest.utils.errors import ProviderUnavailableError, UploadError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 60.0


class SupabaseBlobStorage(IBlobStorage):
    """Store blobs in a Supabase Storage bucket."""

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "sources",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = f"{supabase_url.rstrip('/')}/storage/v1/object/{bucket}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def upload(
        self,
        data: bytes,
        notebook_id: str,
        source_id: str,
        filename: str,
        content_type: str = "",
    ) -> str:
        path = blob_path(notebook_id, source_id, filename)
        headers = {
            **self._headers,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }
        try:
            response = await self._client.post(self._object_url(path), content=data, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise UploadError(
                message=f"Timeout uploading {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise UploadError(
                message=f"Upload rejected ({exc.response.status_code}): {exc.response.text}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise UploadError(
                message=f"HTTP error uploading {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("blob_uploaded", path=path, size=len(data))
        return path

    async def download(self, file_path: str) -> bytes:
        try:
            response = await self._client.get(self._object_url(file_path), headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UploadError(
                message=f"Download failed ({exc.response.status_code}) for {file_path}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"HTTP error downloading {file_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return response.content

    async def delete(self, file_path: str) -> None:
        try:
            response = await self._client.delete(self._object_url(file_path), headers=self._headers)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"HTTP error deleting {file_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if response.status_code not in (200, 204, 404):
            raise UploadError(
                message=f"Delete failed ({response.status_code}) for {file_path}",
                provider_name=self.get_provider_name(),
            )

    def get_provider_name(self) -> str:
        return "supabase-storage"

    def _object_url(self, file_path: str) -> str:
        return f"{self._base_url}/{quote(file_path)}"
