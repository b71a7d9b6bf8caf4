"""Source ingestion pipeline.

- **validator** -- pure admission checks for files, URLs and pasted text.
- **state_machine** -- per-source status FSM driven by an event queue.
- **orchestrator** -- batch sequencing, upload, processing, metadata claim.
- **event_bus** -- per-notebook listener registry for ingestion events.
- **reporting** -- batch summaries and per-item lists for display.
"""

from notebook_ingest.pipeline.event_bus import IngestionEventBus
from notebook_ingest.pipeline.orchestrator import IngestionOrchestrator
from notebook_ingest.pipeline.reporting import BatchSummary, format_file_size, summarize_batch
from notebook_ingest.pipeline.state_machine import SourceStateMachine, Transition

__all__ = [
    "BatchSummary",
    "IngestionEventBus",
    "IngestionOrchestrator",
    "SourceStateMachine",
    "Transition",
    "format_file_size",
    "summarize_batch",
]
