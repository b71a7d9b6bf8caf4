"""notebook-ingest domain models -- re-exports all public model classes.

The models are organized by domain concern:
    - source.py    -- Source records, their status/type enums, file candidates
    - notebook.py  -- Notebooks and generated notebook metadata
    - pipeline.py  -- State-machine events, stage policies, results, events
"""

from __future__ import annotations

from notebook_ingest.models.notebook import (
    DEFAULT_NOTEBOOK_TITLE,
    GenerationStatus,
    Notebook,
    NotebookMetadata,
)
from notebook_ingest.models.pipeline import (
    BatchResult,
    FailurePolicy,
    FileValidation,
    IngestionEvent,
    IngestionEventKind,
    ItemOutcome,
    SourceEvent,
    StagePolicies,
)
from notebook_ingest.models.source import (
    FileCandidate,
    ProcessingStatus,
    Source,
    SourceOrigin,
    SourceType,
)

__all__ = [
    "DEFAULT_NOTEBOOK_TITLE",
    "BatchResult",
    "FailurePolicy",
    "FileCandidate",
    "FileValidation",
    "GenerationStatus",
    "IngestionEvent",
    "IngestionEventKind",
    "ItemOutcome",
    "Notebook",
    "NotebookMetadata",
    "ProcessingStatus",
    "Source",
    "SourceEvent",
    "SourceOrigin",
    "SourceType",
    "StagePolicies",
]
