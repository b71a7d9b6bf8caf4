"""Per-source processing-status state machine.

One :class:`SourceStateMachine` wraps the status of a single source.  Events
are queued with :meth:`~SourceStateMachine.post` and applied in order by
:meth:`~SourceStateMachine.step` / :meth:`~SourceStateMachine.drain`, so the
transition table and its guards can be exercised without any I/O.

    pending ──begin_upload──────→ uploading ──upload_succeeded──→ processing
    pending ──begin_processing──────────────────────────────────→ processing
    processing ──processing_succeeded | processing_degraded──→ completed
    uploading | processing ──fail──→ failed
    failed ──retry (manual only)──→ pending

``completed`` and ``failed`` are terminal for automatic events.  The single
way out of ``failed`` is a retry posted with ``manual=True``.
"""

from __future__ import annotations

from collections import deque
from typing import NamedTuple

from notebook_ingest.models.pipeline import SourceEvent
from notebook_ingest.models.source import ProcessingStatus
from notebook_ingest.utils.errors import InvalidTransitionError

_S = ProcessingStatus
_E = SourceEvent

TRANSITIONS: dict[tuple[ProcessingStatus, SourceEvent], ProcessingStatus] = {
    (_S.PENDING, _E.BEGIN_UPLOAD): _S.UPLOADING,
    (_S.PENDING, _E.BEGIN_PROCESSING): _S.PROCESSING,
    (_S.UPLOADING, _E.UPLOAD_SUCCEEDED): _S.PROCESSING,
    (_S.UPLOADING, _E.FAIL): _S.FAILED,
    (_S.PROCESSING, _E.PROCESSING_SUCCEEDED): _S.COMPLETED,
    (_S.PROCESSING, _E.PROCESSING_DEGRADED): _S.COMPLETED,
    (_S.PROCESSING, _E.FAIL): _S.FAILED,
    (_S.FAILED, _E.RETRY): _S.PENDING,
}


class Transition(NamedTuple):
    """One applied transition."""

    source: ProcessingStatus
    event: SourceEvent
    target: ProcessingStatus


class SourceStateMachine:
    """Explicit finite-state machine for one source's processing status.

    Parameters
    ----------
    status:
        Starting status; ``pending`` for freshly created sources, or the
        last persisted status when re-entering an existing source.
    source_id:
        Only used in error messages.
    """

    def __init__(
        self,
        status: ProcessingStatus = ProcessingStatus.PENDING,
        source_id: str | None = None,
    ) -> None:
        self._status = status
        self._source_id = source_id
        self._queue: deque[tuple[SourceEvent, bool]] = deque()
        self._history: list[Transition] = []

    @property
    def status(self) -> ProcessingStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    @property
    def history(self) -> list[Transition]:
        return list(self._history)

    @property
    def pending_events(self) -> int:
        return len(self._queue)

    def can_fire(self, event: SourceEvent, *, manual: bool = False) -> bool:
        """Return ``True`` when *event* is allowed from the current status."""
        if event == SourceEvent.RETRY and not manual:
            return False
        return (self._status, event) in TRANSITIONS

    def post(self, event: SourceEvent, *, manual: bool = False) -> None:
        """Queue *event*; nothing changes until :meth:`step` runs."""
        self._queue.append((event, manual))

    def step(self) -> Transition | None:
        """Apply the oldest queued event.

        Returns
        -------
        Transition or None
            The applied transition, or ``None`` when the queue is empty.

        Raises
        ------
        InvalidTransitionError
            If the event is not allowed from the current status.  The event
            is dropped and the status is left unchanged.
        """
        if not self._queue:
            return None

        event, manual = self._queue.popleft()
        if not self.can_fire(event, manual=manual):
            reason = "retry requires a manual request" if event == SourceEvent.RETRY else "not allowed"
            raise InvalidTransitionError(
                message=(
                    f"Event '{event.value}' {reason} from status "
                    f"'{self._status.value}'"
                    + (f" (source {self._source_id})" if self._source_id else "")
                )
            )

        transition = Transition(self._status, event, TRANSITIONS[(self._status, event)])
        self._status = transition.target
        self._history.append(transition)
        return transition

    def drain(self) -> list[Transition]:
        """Apply every queued event in order and return the transitions.

        Stops at the first invalid event; later events stay queued.
        """
        applied: list[Transition] = []
        while self._queue:
            transition = self.step()
            if transition is not None:
                applied.append(transition)
        return applied

    def fire(self, event: SourceEvent, *, manual: bool = False) -> Transition:
        """Queue *event* and apply it immediately."""
        if self._queue:
            raise InvalidTransitionError(
                message=f"Cannot fire '{event.value}' while {len(self._queue)} event(s) are queued"
            )
        self.post(event, manual=manual)
        transition = self.step()
        assert transition is not None
        return transition
