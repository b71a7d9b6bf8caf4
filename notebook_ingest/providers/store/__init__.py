"""Record store providers (sources and notebooks)."""

from notebook_ingest.providers.store.memory_store import MemoryRecordStore
from notebook_ingest.providers.store.sqlite_store import SQLiteRecordStore
from notebook_ingest.providers.store.supabase_store import SupabaseRecordStore

__all__ = ["MemoryRecordStore", "SQLiteRecordStore", "SupabaseRecordStore"]
