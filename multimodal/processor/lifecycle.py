"""Run state machine shared by every processor.

PENDING -> PROCESSING -> COMPLETED | FAILED. A cancelled run ends FAILED with
a ``cancelled`` event; once cancellation is requested COMPLETED is unreachable.
"""

import asyncio
from datetime import datetime

from multimodal.logging.logger import Log
from multimodal.processor.events import EventChannel, EventKind
from multimodal.processor.exceptions import ProcessorError
from multimodal.processor.models import ProcessingStatus, utcnow
from multimodal.processor.results import StatusSnapshot


class RunLifecycle:
    """Tracks status, progress and the abort signal of a single run."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self.events = EventChannel(run_id)
        self.abort = asyncio.Event()
        self._status = ProcessingStatus.PENDING
        self._progress = 0.0
        self._error: str | None = None
        self._start_time: datetime | None = None
        self._end_time: datetime | None = None

    @property
    def status(self) -> ProcessingStatus:
        return self._status

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def cancel_requested(self) -> bool:
        return self.abort.is_set()

    @property
    def terminal(self) -> bool:
        return self._status in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            id=self.run_id,
            status=self._status,
            progress=self._progress,
            error=self._error,
            start_time=self._start_time,
            end_time=self._end_time,
        )

    def start(self) -> None:
        if self._status is not ProcessingStatus.PENDING:
            raise ProcessorError(f"Run {self.run_id} was already started")
        self._status = ProcessingStatus.PROCESSING
        self._start_time = utcnow()
        self._progress = 0.0
        self._error = None

    def request_cancel(self) -> bool:
        """Raise the abort signal. Returns False when there is nothing to cancel."""
        if self.terminal or self.abort.is_set():
            return False
        self.abort.set()
        return True

    def update_progress(self, value: float) -> None:
        """Clamp into [0, 1] and publish; the reported value never decreases."""
        if self.terminal:
            return
        clamped = max(0.0, min(1.0, value))
        self._progress = max(self._progress, clamped)
        self.events.emit(EventKind.PROGRESS, {"progress": self._progress})

    def complete(self, payload: dict[str, object] | None = None) -> None:
        if self._status is not ProcessingStatus.PROCESSING or self.abort.is_set():
            raise ProcessorError(f"Run {self.run_id} cannot complete from {self._status.value}")
        self._status = ProcessingStatus.COMPLETED
        self._end_time = utcnow()
        self._progress = 1.0
        self.events.emit(EventKind.COMPLETED, payload)
        self.events.close()

    def fail(self, error: str, code: str) -> None:
        if self.terminal:
            return
        self._status = ProcessingStatus.FAILED
        self._end_time = utcnow()
        self._error = error
        self.events.emit(EventKind.FAILED, {"error": error, "code": code})
        self.events.close()

    def cancelled(self, error: str = "Processing cancelled") -> None:
        if self.terminal:
            return
        self.abort.set()
        self._status = ProcessingStatus.FAILED
        self._end_time = utcnow()
        self._error = error
        self.events.emit(EventKind.CANCELLED, {"error": error, "code": "cancelled"})
        self.events.close()


class ProgressTracker:
    """Aggregates stage-local progress into one monotonic run progress.

    Decoding accounts for ``DECODE_SHARE`` of the run; the remainder is split
    evenly across the planned stages.
    """

    DECODE_SHARE = 0.2

    def __init__(self, lifecycle: RunLifecycle) -> None:
        self._lifecycle = lifecycle
        self._stages: dict[str, float] = {}

    def decoded(self) -> None:
        self._lifecycle.update_progress(self.DECODE_SHARE)

    def plan(self, stage_names: list[str]) -> None:
        self._stages = {name: 0.0 for name in stage_names}

    def stage(self, name: str, fraction: float) -> None:
        if name not in self._stages:
            Log.warning(f"Progress reported for unplanned stage '{name}'")
            return
        self._stages[name] = max(self._stages[name], max(0.0, min(1.0, fraction)))
        done = sum(self._stages.values()) / len(self._stages)
        self._lifecycle.update_progress(self.DECODE_SHARE + (1.0 - self.DECODE_SHARE) * done)
