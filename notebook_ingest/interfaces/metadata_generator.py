"""Abstract base class for notebook metadata generators."""

from __future__ import annotations

from abc import ABC, abstractmethod

from notebook_ingest.models.notebook import NotebookMetadata
from notebook_ingest.models.source import SourceType


# Concrete implementations: SimpleMetadataGenerator, WebServiceMetadataGenerator
# Located in: notebook_ingest/providers/metadata/
class IMetadataGenerator(ABC):
    """Contract for deriving a notebook's title, description, icon, colour
    and example questions from its first completed source."""

    @abstractmethod
    async def generate(
        self,
        notebook_id: str,
        file_path: str | None,
        source_type: SourceType,
        content: str | None = None,
    ) -> NotebookMetadata:
        """Generate metadata for *notebook_id*.

        Parameters
        ----------
        notebook_id:
            The notebook being described.
        file_path:
            Blob path or URL of the triggering source; ``None`` for text.
        source_type:
            Type of the triggering source.
        content:
            Pasted text of the triggering source, when it has no path.

        Raises
        ------
        notebook_ingest.utils.errors.MetadataGenerationError
            If generation fails or returns unusable output.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"simple"``."""
