"""Filesystem blob storage.

Writes uploaded bytes below a root directory using the same
``{notebook_id}/{source_id}-{filename}`` layout as the hosted bucket.
Disk I/O runs in a worker thread via ``asyncio.to_thread`` so uploads
never block the event loop.
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath

import structlog

from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.utils.errors import UploadError

logger = structlog.get_logger(logger_name=__name__)


def blob_path(notebook_id: str, source_id: str, filename: str) -> str:
    """Storage path for a source file; only the filename's last segment is kept."""
    safe_name = PurePosixPath(filename.replace("\\", "/")).name or "file"
    return f"{notebook_id}/{source_id}-{safe_name}"


class LocalBlobStorage(IBlobStorage):
    """Store blobs as files under *root*."""

    def __init__(self, root: str | Path = "data/blobs") -> None:
        self._root = Path(root)

    async def upload(
        self,
        data: bytes,
        notebook_id: str,
        source_id: str,
        filename: str,
        content_type: str = "",
    ) -> str:
        path = blob_path(notebook_id, source_id, filename)
        target = self._resolve(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise UploadError(
                message=f"Could not write {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("blob_written", path=path, size=len(data), content_type=content_type)
        return path

    async def download(self, file_path: str) -> bytes:
        target = self._resolve(file_path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            raise UploadError(
                message=f"Could not read {file_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def delete(self, file_path: str) -> None:
        target = self._resolve(file_path)
        await asyncio.to_thread(target.unlink, True)

    def get_provider_name(self) -> str:
        return "local-storage"

    def _resolve(self, file_path: str) -> Path:
        target = (self._root / file_path).resolve()
        if not target.is_relative_to(self._root.resolve()):
            raise UploadError(
                message=f"Path escapes storage root: {file_path}",
                provider_name=self.get_provider_name(),
            )
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
