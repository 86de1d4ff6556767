import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from multimodal.logging.logger import Log
from multimodal.processor.events import EventKind, EventSubscription, Listener
from multimodal.processor.exceptions import (
    CancellationError,
    InputError,
    ProcessingTimeoutError,
    ProcessorError,
    StageError,
)
from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.lifecycle import ProgressTracker, RunLifecycle
from multimodal.processor.models import (
    MediaKind,
    MediaRecord,
    ProcessingOptions,
    ProcessingStatus,
    new_id,
    utcnow,
)
from multimodal.processor.results import ProcessingResult, StatusSnapshot


def _cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


@dataclass(frozen=True)
class Stage:
    """One independently selectable unit of work within a run."""

    name: str
    run: Callable[[], Awaitable[None]]


class BaseProcessor(ABC):
    """Contract and run template shared by the image, audio and document processors.

    ``process`` drives one run: decode the record (a sequential barrier), then
    start every enabled stage in a single task group and wait for all of them.
    A processor instance handles exactly one run.
    """

    kind: ClassVar[MediaKind]
    record_type: ClassVar[type[MediaRecord]]
    options_type: ClassVar[type[ProcessingOptions]]

    def __init__(self, loader: MediaLoader, *, run_id: str | None = None) -> None:
        self._loader = loader
        self._lifecycle = RunLifecycle(run_id or new_id("mmp"))
        self._progress = ProgressTracker(self._lifecycle)
        self._task: asyncio.Task[None] | None = None

    @property
    def run_id(self) -> str:
        return self._lifecycle.run_id

    def on(self, kind: EventKind, listener: Listener) -> None:
        self._lifecycle.events.on(kind, listener)

    def off(self, kind: EventKind, listener: Listener) -> None:
        self._lifecycle.events.off(kind, listener)

    def subscribe(self, maxsize: int = 0) -> EventSubscription:
        return self._lifecycle.events.subscribe(maxsize)

    def get_status(self) -> StatusSnapshot:
        return self._lifecycle.snapshot()

    def cancel(self) -> None:
        """Request cancellation; in-flight stage tasks are cancelled with the run."""
        if not self._lifecycle.request_cancel():
            return
        Log.info(f"Cancellation requested for run {self.run_id}")
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def abandon(self) -> None:
        """End a run that was never started; it reports ``cancelled`` like any cancelled run."""
        if self._lifecycle.status is not ProcessingStatus.PENDING:
            return
        self._lifecycle.request_cancel()
        self._lifecycle.cancelled()
        Log.warning(f"Run {self.run_id} abandoned before it started")

    async def process(
        self,
        record: MediaRecord,
        options: ProcessingOptions | None = None,
    ) -> ProcessingResult:
        """Run the pipeline for ``record`` and return once a terminal state is reached."""
        options = options if options is not None else self.options_type()
        result = self._new_result(record)
        self._lifecycle.start()
        result.status = ProcessingStatus.PROCESSING
        Log.info(f"Run {self.run_id} started for {self.kind.value} record {record.id}")

        self._task = asyncio.create_task(self._run(record, options, result), name=self.run_id)
        try:
            await self._task
        except asyncio.CancelledError:
            # Our own cancel() ends the run task; the caller being cancelled must propagate.
            if _cancelling():
                raise
        return result

    async def _run(
        self,
        record: MediaRecord,
        options: ProcessingOptions,
        result: ProcessingResult,
    ) -> None:
        try:
            self._raise_if_cancelled()
            self._validate(record, options)
            async with asyncio.timeout(options.timeout_seconds):
                decoded = await self._decode(record, options)
                self._progress.decoded()
                Log.debug(f"Run {self.run_id} decoded input")
                stages = self._plan_stages(decoded, result, options)
                await self._fan_out(stages)
            self._raise_if_cancelled()
        except (asyncio.CancelledError, CancellationError):
            self._finish_cancelled(result)
            if _cancelling():
                raise
        except TimeoutError:
            self._finish_failed(
                result,
                ProcessingTimeoutError(f"Run exceeded {options.timeout_seconds}s deadline"),
            )
        except ProcessorError as exc:
            self._finish_failed(result, exc)
        except Exception as exc:
            Log.exception(f"Run {self.run_id} failed unexpectedly")
            self._finish_failed(result, ProcessorError(str(exc) or type(exc).__name__))
        else:
            self._finish_completed(result)
        finally:
            await self._release()

    async def _fan_out(self, stages: list[Stage]) -> None:
        self._progress.plan([stage.name for stage in stages])
        if not stages:
            return
        try:
            async with asyncio.TaskGroup() as group:
                for stage in stages:
                    group.create_task(self._run_stage(stage), name=f"{self.run_id}:{stage.name}")
        except BaseExceptionGroup as group:
            errors = [exc for exc in group.exceptions if isinstance(exc, ProcessorError)]
            if not errors:
                raise
            raise errors[0]

    async def _run_stage(self, stage: Stage) -> None:
        Log.debug(f"Run {self.run_id} stage '{stage.name}' started")
        try:
            await stage.run()
        except (asyncio.CancelledError, ProcessorError):
            raise
        except Exception as exc:
            raise StageError(stage.name, str(exc) or type(exc).__name__) from exc
        self._progress.stage(stage.name, 1.0)
        Log.debug(f"Run {self.run_id} stage '{stage.name}' finished")

    def _report(self, stage: str, fraction: float) -> None:
        """Stage-local progress hook for long stages."""
        self._progress.stage(stage, fraction)

    def _validate(self, record: MediaRecord, options: ProcessingOptions) -> None:
        if not isinstance(record, self.record_type):
            raise InputError(
                f"{type(self).__name__} cannot process {type(record).__name__}"
            )
        if not isinstance(options, self.options_type):
            raise InputError(
                f"{type(self).__name__} expects {self.options_type.__name__}, "
                f"got {type(options).__name__}"
            )
        if options.quality is not None and not 0.0 <= options.quality <= 1.0:
            raise InputError(f"quality must be within [0, 1], got {options.quality}")

    def _raise_if_cancelled(self) -> None:
        if self._lifecycle.cancel_requested:
            raise CancellationError(f"Run {self.run_id} was cancelled")

    def _finish_completed(self, result: ProcessingResult) -> None:
        self._stamp(result, ProcessingStatus.COMPLETED)
        result.progress = 1.0
        self._lifecycle.complete({"result": result})
        Log.info(f"Run {self.run_id} completed in {result.duration:.3f}s")

    def _finish_failed(self, result: ProcessingResult, exc: ProcessorError) -> None:
        self._stamp(result, ProcessingStatus.FAILED)
        result.error = str(exc)
        result.error_code = exc.code
        result.progress = self._lifecycle.progress
        self._lifecycle.fail(result.error, exc.code)
        Log.error(f"Run {self.run_id} failed: {result.error}")

    def _finish_cancelled(self, result: ProcessingResult) -> None:
        self._stamp(result, ProcessingStatus.FAILED)
        result.error = "Processing cancelled"
        result.error_code = CancellationError.code
        result.progress = self._lifecycle.progress
        self._lifecycle.cancelled(result.error)
        Log.warning(f"Run {self.run_id} cancelled")

    @staticmethod
    def _stamp(result: ProcessingResult, status: ProcessingStatus) -> None:
        result.status = status
        result.completed_at = utcnow()
        result.duration = (result.completed_at - result.created_at).total_seconds()

    async def _release(self) -> None:
        """Release resources owned by the run; called on every exit path."""

    @abstractmethod
    def _new_result(self, record: MediaRecord) -> ProcessingResult:
        raise NotImplementedError

    @abstractmethod
    async def _decode(self, record: MediaRecord, options: Any) -> Any:
        """Load and decode the record; runs before any stage starts."""

    @abstractmethod
    def _plan_stages(self, decoded: Any, result: Any, options: Any) -> list[Stage]:
        """Return the stages enabled by ``options``."""
