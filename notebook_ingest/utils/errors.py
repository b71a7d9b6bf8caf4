"""Custom exception hierarchy for notebook-ingest.

All application exceptions inherit from :class:`NotebookIngestError`, which
carries an optional ``provider_name`` so error handlers can identify which
backend (e.g. "supabase-storage", "sqlite", "web-service") caused the
failure.

The hierarchy is organized by pipeline stage:

    NotebookIngestError  (base -- catch-all for any notebook-ingest error)
    +-- ValidationError            (admission: file type / size / URL checks)
    +-- UploadError                (blob storage write failed)
    +-- ContentProcessingError     (external or local extraction failed)
    +-- MetadataGenerationError    (notebook title/description generation)
    +-- RecordStoreError           (source / notebook persistence)
    |   +-- SourceNotFoundError
    |   +-- NotebookNotFoundError
    +-- PipelineError              (orchestration / state transitions)
    |   +-- InvalidTransitionError
    +-- ConfigurationError         (startup / missing config)
    +-- ProviderUnavailableError   (external service down / unreachable)
"""


class NotebookIngestError(Exception):
    """Base exception for all notebook-ingest errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backend triggered the error.  The
    ``__str__`` method prefixes the provider name in brackets, e.g.
    ``[supabase-storage] Upload rejected (413)``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Admission
# ---------------------------------------------------------------------------

class ValidationError(NotebookIngestError):
    """Raised when a candidate source is rejected before a record exists."""

    def __init__(
        self,
        message: str = "Source rejected by validation",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

class UploadError(NotebookIngestError):
    """Raised when raw file bytes cannot be written to blob storage."""

    def __init__(
        self,
        message: str = "Blob upload failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ContentProcessingError(NotebookIngestError):
    """Raised when a content processor cannot extract a source's content."""

    def __init__(
        self,
        message: str = "Content processing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MetadataGenerationError(NotebookIngestError):
    """Raised when notebook title/description generation fails."""

    def __init__(
        self,
        message: str = "Notebook metadata generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class RecordStoreError(NotebookIngestError):
    """Raised when a source or notebook record cannot be read or written."""

    def __init__(
        self,
        message: str = "Record store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SourceNotFoundError(RecordStoreError):
    """Raised when a source id does not resolve to a stored record."""

    def __init__(
        self,
        message: str = "Source not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotebookNotFoundError(RecordStoreError):
    """Raised when a notebook id does not resolve to a stored record."""

    def __init__(
        self,
        message: str = "Notebook not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(NotebookIngestError):
    """Raised when pipeline orchestration fails."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidTransitionError(PipelineError):
    """Raised when an event is not allowed from a source's current status."""

    def __init__(
        self,
        message: str = "Invalid processing status transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(NotebookIngestError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(NotebookIngestError):
    """Raised when an external service is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
