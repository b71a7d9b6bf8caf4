"""Notebook models.

A notebook groups sources and carries descriptive fields derived by the
metadata generator from its first completed source.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NOTEBOOK_TITLE = "Untitled notebook"


class GenerationStatus(str, Enum):  # noqa: UP042: StrEnum requires Python 3.11+
    """Status of the notebook metadata generation step."""

    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class NotebookMetadata(BaseModel):
    """Output of a metadata generator."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str | None = None
    icon: str = "📝"
    color: str = "bg-gray-100"
    example_questions: list[str] = Field(default_factory=list)


class Notebook(BaseModel):
    """A collection of sources plus AI-derived descriptive metadata.

    ``metadata_claimed`` is the explicit "first source" flag: the record
    store flips it atomically for exactly one caller, which then runs the
    metadata generator.  ``generation_status`` stays ``None`` until that
    happens.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = DEFAULT_NOTEBOOK_TITLE
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    example_questions: list[str] = Field(default_factory=list)
    generation_status: GenerationStatus | None = None
    metadata_claimed: bool = False
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
