"""Pipeline models: state-machine events, stage policies, results, events.

All models are frozen.  The orchestrator returns a :class:`BatchResult`
for every add-action and publishes :class:`IngestionEvent` records to the
event bus as each source moves through its states; presentation (toast
summaries, per-item lists) is layered on top in
``notebook_ingest.pipeline.reporting``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from notebook_ingest.models.source import ProcessingStatus, SourceType


# ---------------------------------------------------------------------------
# SourceEvent: inputs to the per-source state machine.
# ---------------------------------------------------------------------------
class SourceEvent(str, Enum):  # noqa: UP042: StrEnum requires Python 3.11+
    """Events that drive :class:`~notebook_ingest.pipeline.state_machine.SourceStateMachine`."""

    BEGIN_UPLOAD = "begin_upload"
    UPLOAD_SUCCEEDED = "upload_succeeded"
    BEGIN_PROCESSING = "begin_processing"
    PROCESSING_SUCCEEDED = "processing_succeeded"
    PROCESSING_DEGRADED = "processing_degraded"
    FAIL = "fail"
    RETRY = "retry"


# ---------------------------------------------------------------------------
# Stage policies: degrade vs fail, per stage.
# ---------------------------------------------------------------------------
class FailurePolicy(str, Enum):  # noqa: UP042
    """What a stage failure does to the item.

    DEGRADE -- processing: the source is completed anyway.
               metadata:   the failure is swallowed (notebook status only).
    FAIL    -- processing: the source is marked failed.
               metadata:   the failure is also reported on the item outcome.
    """

    DEGRADE = "degrade"
    FAIL = "fail"


class StagePolicies(BaseModel):
    """Failure policy for each stage whose failure is policy-driven.

    Upload failures always fail the source; there is no policy for them.
    """

    model_config = ConfigDict(frozen=True)

    processing: FailurePolicy = FailurePolicy.DEGRADE
    metadata: FailurePolicy = FailurePolicy.DEGRADE


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------
class FileValidation(BaseModel):
    """Admission decision for one candidate file."""

    model_config = ConfigDict(frozen=True)

    filename: str
    accepted: bool
    source_type: SourceType | None = None
    reasons: list[str] = Field(default_factory=list)

    @property
    def reason(self) -> str | None:
        """All rejection reasons joined for display, or ``None`` when accepted."""
        if not self.reasons:
            return None
        return "; ".join(self.reasons)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class ItemOutcome(BaseModel):
    """Settled result for one item of a batch."""

    model_config = ConfigDict(frozen=True)

    name: str
    source_id: str | None = None
    status: ProcessingStatus | None = None
    rejected: bool = False
    # True when processing failed but the source was completed anyway.
    degraded: bool = False
    # True when run_source found nothing to do (idempotence guard).
    skipped: bool = False
    error: str | None = None
    metadata_error: str | None = None

    @property
    def succeeded(self) -> bool:
        return not self.rejected and self.status == ProcessingStatus.COMPLETED


class BatchResult(BaseModel):
    """All outcomes of one add-action, in submission order."""

    model_config = ConfigDict(frozen=True)

    notebook_id: str
    outcomes: list[ItemOutcome] = Field(default_factory=list)
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    completed_at: datetime | None = None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failure_count(self) -> int:
        return self.total - self.success_count

    @property
    def rejected(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.rejected]

    @property
    def source_ids(self) -> list[str]:
        return [o.source_id for o in self.outcomes if o.source_id is not None]


# ---------------------------------------------------------------------------
# Event stream
# ---------------------------------------------------------------------------
class IngestionEventKind(str, Enum):  # noqa: UP042
    """Kinds of records published on the ingestion event bus."""

    SOURCE_CREATED = "source_created"
    STATUS_CHANGED = "status_changed"
    SOURCE_REJECTED = "source_rejected"
    SOURCE_DELETED = "source_deleted"
    METADATA_GENERATED = "metadata_generated"
    METADATA_FAILED = "metadata_failed"
    BATCH_SETTLED = "batch_settled"


class IngestionEvent(BaseModel):
    """One record on the ingestion event stream."""

    model_config = ConfigDict(frozen=True)

    kind: IngestionEventKind
    notebook_id: str
    source_id: str | None = None
    status: ProcessingStatus | None = None
    message: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
