"""Presentation helpers for settled batches.

Turns a :class:`BatchResult` into one user-facing summary (the "toast")
plus a per-item list.  Nothing here talks to a store or a provider.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from notebook_ingest.models.pipeline import BatchResult, ItemOutcome


class SummaryVariant(str, Enum):  # noqa: UP042
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class ItemLine(BaseModel):
    """One row of the per-item list."""

    model_config = ConfigDict(frozen=True)

    name: str
    source_id: str | None = None
    state: str
    detail: str | None = None


class BatchSummary(BaseModel):
    """Single summary of one add-action."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    variant: SummaryVariant = SummaryVariant.DEFAULT
    success_count: int = 0
    failure_count: int = 0
    items: list[ItemLine] = Field(default_factory=list)


def _plural(count: int, word: str = "source") -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _item_line(outcome: ItemOutcome) -> ItemLine:
    if outcome.rejected:
        state = "rejected"
    elif outcome.skipped:
        state = f"unchanged ({outcome.status.value})" if outcome.status else "unchanged"
    elif outcome.degraded:
        state = "completed (processing degraded)"
    elif outcome.status is not None:
        state = outcome.status.value
    else:
        state = "failed"

    detail = outcome.error
    if outcome.metadata_error:
        detail = (
            f"{detail}; notebook details: {outcome.metadata_error}"
            if detail
            else f"notebook details: {outcome.metadata_error}"
        )
    return ItemLine(name=outcome.name, source_id=outcome.source_id, state=state, detail=detail)


def summarize_batch(result: BatchResult) -> BatchSummary:
    """Build the summary for *result*.

    The variant is ``destructive`` whenever at least one item failed or was
    rejected, ``default`` otherwise.
    """
    succeeded = result.success_count
    failed = result.failure_count

    if result.total == 0:
        title, description = "Nothing to add", "No sources were submitted"
    elif failed == 0:
        title = "Sources added"
        description = f"{_plural(succeeded)} added successfully"
    elif succeeded == 0:
        title = "Failed to add sources"
        description = f"{_plural(failed)} could not be added"
    else:
        title = "Some sources could not be added"
        description = f"{succeeded} of {result.total} sources added; {failed} failed"

    return BatchSummary(
        title=title,
        description=description,
        variant=SummaryVariant.DESTRUCTIVE if failed else SummaryVariant.DEFAULT,
        success_count=succeeded,
        failure_count=failed,
        items=[_item_line(o) for o in result.outcomes],
    )


def format_file_size(size: int | None) -> str:
    """Human-readable byte count (``"1.5 MB"``); ``"-"`` when unknown."""
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"
