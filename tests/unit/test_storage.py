"""Unit tests for LocalBlobStorage and blob path layout."""

from __future__ import annotations

from pathlib import Path

import pytest

from notebook_ingest.providers.storage.local_storage import LocalBlobStorage, blob_path
from notebook_ingest.utils.errors import UploadError


class TestBlobPath:
    def test_layout(self) -> None:
        assert blob_path("nb", "src", "paper.pdf") == "nb/src-paper.pdf"

    def test_directory_components_are_dropped(self) -> None:
        assert blob_path("nb", "src", "../../etc/passwd") == "nb/src-passwd"
        assert blob_path("nb", "src", "C:\\Users\\me\\notes.txt") == "nb/src-notes.txt"


class TestLocalBlobStorage:
    @pytest.fixture()
    def storage(self, tmp_path: Path) -> LocalBlobStorage:
        return LocalBlobStorage(root=tmp_path / "blobs")

    @pytest.mark.asyncio
    async def test_upload_download_delete(self, storage: LocalBlobStorage, tmp_path: Path) -> None:
        path = await storage.upload(b"hello", "nb", "src", "hello.txt", "text/plain")

        assert path == "nb/src-hello.txt"
        assert (tmp_path / "blobs" / "nb" / "src-hello.txt").read_bytes() == b"hello"
        assert await storage.download(path) == b"hello"

        await storage.delete(path)
        assert not (tmp_path / "blobs" / "nb" / "src-hello.txt").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, storage: LocalBlobStorage) -> None:
        await storage.delete("nb/never-written.txt")

    @pytest.mark.asyncio
    async def test_download_missing_raises(self, storage: LocalBlobStorage) -> None:
        with pytest.raises(UploadError):
            await storage.download("nb/missing.pdf")

    @pytest.mark.asyncio
    async def test_path_escape_is_rejected(self, storage: LocalBlobStorage) -> None:
        with pytest.raises(UploadError, match="escapes"):
            await storage.download("../outside.txt")

    @pytest.mark.asyncio
    async def test_write_failure_raises_upload_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        storage = LocalBlobStorage(root=blocker)

        with pytest.raises(UploadError) as exc_info:
            await storage.upload(b"x", "nb", "src", "a.txt")

        assert exc_info.value.provider_name == "local-storage"
