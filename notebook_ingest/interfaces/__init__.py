"""Public interface definitions for every pipeline collaborator.

Every external service the ingestion pipeline touches is accessed through the
abstract base classes in this package.  Concrete adapters live in
``notebook_ingest/providers/`` and are selected in ``notebook_ingest/main.py``
from settings, so tests can inject in-memory or mocked collaborators.

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementations
    ─────────────────────────────────────────────────────────────────
    ISourceStore           →  MemoryRecordStore, SQLiteRecordStore,
    INotebookStore            SupabaseRecordStore
    IBlobStorage           →  LocalBlobStorage, SupabaseBlobStorage
    IContentProcessor      →  LocalContentProcessor,
                              EdgeFunctionContentProcessor
    IMetadataGenerator     →  SimpleMetadataGenerator,
                              WebServiceMetadataGenerator
"""

from notebook_ingest.interfaces.blob_storage import IBlobStorage
from notebook_ingest.interfaces.content_processor import IContentProcessor
from notebook_ingest.interfaces.metadata_generator import IMetadataGenerator
from notebook_ingest.interfaces.notebook_store import INotebookStore
from notebook_ingest.interfaces.source_store import ISourceStore

__all__ = [
    "IBlobStorage",
    "IContentProcessor",
    "IMetadataGenerator",
    "INotebookStore",
    "ISourceStore",
]
