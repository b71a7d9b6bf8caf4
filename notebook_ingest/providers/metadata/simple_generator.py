"""Offline notebook metadata generation.

Used when no generation web service is configured.  Derives a title from
the triggering source (file name, link domain or first line of text) and
picks an icon by source type.  Never calls out and never fails.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from notebook_ingest.interfaces.metadata_generator import IMetadataGenerator
from notebook_ingest.models.notebook import DEFAULT_NOTEBOOK_TITLE, NotebookMetadata
from notebook_ingest.models.source import SourceType
from notebook_ingest.pipeline.validator import derive_text_title, domain_label, is_valid_url

_ICONS: dict[SourceType, str] = {
    SourceType.PDF: "📄",
    SourceType.AUDIO: "🎵",
    SourceType.TEXT: "📝",
    SourceType.WEBSITE: "🌐",
    SourceType.YOUTUBE: "🎬",
}
_COLOR = "bg-blue-100"
_DEFAULT_DESCRIPTION = "This notebook contains your uploaded source. Chat with it to learn more!"

# Blob paths are "{notebook_id}/{source_id}-{filename}".
_SOURCE_ID_PREFIX = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}-")


class SimpleMetadataGenerator(IMetadataGenerator):
    """Rule-based :class:`IMetadataGenerator`."""

    async def generate(
        self,
        notebook_id: str,
        file_path: str | None,
        source_type: SourceType,
        content: str | None = None,
    ) -> NotebookMetadata:
        title = DEFAULT_NOTEBOOK_TITLE
        description = _DEFAULT_DESCRIPTION

        if file_path and is_valid_url(file_path):
            title = domain_label(file_path)
            kind = "video" if source_type == SourceType.YOUTUBE else "website"
            description = f"This notebook contains the {kind}: {file_path}"
        elif file_path:
            file_name = _SOURCE_ID_PREFIX.sub("", PurePosixPath(file_path).name) or "document"
            title = PurePosixPath(file_name).stem or file_name
            if source_type == SourceType.PDF:
                description = f"This notebook contains the PDF document: {file_name}"
            elif source_type == SourceType.AUDIO:
                description = f"This notebook contains the audio file: {file_name}"
            else:
                description = "This notebook contains your text content."
        elif content:
            title = derive_text_title(content)
            description = "This notebook contains your text content."

        return NotebookMetadata(
            title=title,
            description=description,
            icon=_ICONS.get(source_type, "📝"),
            color=_COLOR,
        )

    def get_provider_name(self) -> str:
        return "simple"
