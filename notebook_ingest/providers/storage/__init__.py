"""Blob storage providers for raw uploaded files."""

from notebook_ingest.providers.storage.local_storage import LocalBlobStorage, blob_path
from notebook_ingest.providers.storage.supabase_storage import SupabaseBlobStorage

__all__ = ["LocalBlobStorage", "SupabaseBlobStorage", "blob_path"]
