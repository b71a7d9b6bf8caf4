"""Abstract base class for blob storage of raw source files."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: LocalBlobStorage, SupabaseBlobStorage
# Located in: notebook_ingest/providers/storage/
class IBlobStorage(ABC):
    """Contract for storing the raw bytes of uploaded files.

    Paths returned by :meth:`upload` are opaque handles; they are recorded
    on the source as ``file_path`` and handed back to :meth:`download`,
    :meth:`delete`, content processors and metadata generators.
    """

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        notebook_id: str,
        source_id: str,
        filename: str,
        content_type: str = "",
    ) -> str:
        """Store *data* and return its path.

        Paths follow ``{notebook_id}/{source_id}-{filename}``.

        Raises
        ------
        notebook_ingest.utils.errors.UploadError
            If the bytes could not be stored.
        """

    @abstractmethod
    async def download(self, file_path: str) -> bytes:
        """Return the bytes stored at *file_path*.

        Raises
        ------
        notebook_ingest.utils.errors.UploadError
            If the object does not exist or cannot be read.
        """

    @abstractmethod
    async def delete(self, file_path: str) -> None:
        """Remove the object at *file_path* (no-op when absent)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"local-storage"``."""
