"""Abstract base class for content processors.

A content processor turns a stored source (file bytes, URL, pasted text)
into normalized text/metadata.  It is invoked once the source reaches
``processing``; its success or failure never decides the final status by
itself.  The orchestrator applies the processing stage policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from notebook_ingest.models.source import SourceType


# Concrete implementations: LocalContentProcessor, EdgeFunctionContentProcessor
# Located in: notebook_ingest/providers/processing/
class IContentProcessor(ABC):
    """Contract for extracting content from an ingested source."""

    @abstractmethod
    async def process(
        self,
        source_id: str,
        file_path: str | None,
        source_type: SourceType,
    ) -> None:
        """Process a source.

        Parameters
        ----------
        source_id:
            The record being processed.
        file_path:
            Blob path for file sources, the URL for website / YouTube
            sources, ``None`` for pasted text.
        source_type:
            The source's type tag.

        Raises
        ------
        notebook_ingest.utils.errors.ContentProcessingError
            If the content could not be extracted.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"edge-function"``."""
