"""Orchestrator: dispatches records to processors and tracks active runs."""

import asyncio
from collections.abc import Callable
from pathlib import Path

from multimodal.config.settings import Settings
from multimodal.logging.logger import Log
from multimodal.processor.base import BaseProcessor
from multimodal.processor.events import TERMINAL_EVENTS, EventKind, ProcessingEvent
from multimodal.processor.exceptions import InputError
from multimodal.processor.factory import ProcessorFactory, build_processor_factory
from multimodal.processor.models import (
    AudioProcessingOptions,
    AudioRecord,
    DocumentProcessingOptions,
    DocumentRecord,
    ImageProcessingOptions,
    ImageRecord,
    MediaRecord,
    ProcessingOptions,
)
from multimodal.processor.results import ProcessingResult, StatusSnapshot

ProgressCallback = Callable[[float], None]
CompleteCallback = Callable[[ProcessingResult], None]
ErrorCallback = Callable[[str], None]


class MediaService:
    """Single entry point for processing media records.

    Keeps a registry of active runs keyed by run ID. A run leaves the registry
    on its first terminal event, or immediately when it is cancelled here.
    """

    def __init__(self, processor_factory: ProcessorFactory, *, max_concurrent_runs: int = 0) -> None:
        self._factory = processor_factory
        self._active: dict[str, BaseProcessor] = {}
        self._tasks: set[asyncio.Task[ProcessingResult]] = set()
        self._slots = asyncio.Semaphore(max_concurrent_runs) if max_concurrent_runs > 0 else None

    def process_data(
        self,
        record: MediaRecord,
        options: ProcessingOptions | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> str:
        """Schedule a run and return its ID without waiting for it.

        Must be called from a running event loop. Raises
        ``UnsupportedMediaKindError`` for kinds no processor handles.
        """
        processor = self._prepare(record, on_progress, on_complete, on_error)
        execution = self._execute(processor, record, options)
        try:
            task = asyncio.create_task(execution, name=processor.run_id)
        except RuntimeError:
            execution.close()
            raise
        self._register(processor, record)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        # A task cancelled before its first step never enters _execute.
        task.add_done_callback(lambda _: processor.abandon())
        return processor.run_id

    async def process_and_wait(
        self,
        record: MediaRecord,
        options: ProcessingOptions | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> ProcessingResult:
        """Run a record to completion and return its result."""
        processor = self._prepare(record, on_progress, on_complete, on_error)
        self._register(processor, record)
        return await self._execute(processor, record, options)

    def process_image(
        self,
        record: ImageRecord,
        options: ImageProcessingOptions | None = None,
        **callbacks: Callable[..., None],
    ) -> str:
        self._require(record, ImageRecord)
        return self.process_data(record, options, **callbacks)

    def process_audio(
        self,
        record: AudioRecord,
        options: AudioProcessingOptions | None = None,
        **callbacks: Callable[..., None],
    ) -> str:
        self._require(record, AudioRecord)
        return self.process_data(record, options, **callbacks)

    def process_document(
        self,
        record: DocumentRecord,
        options: DocumentProcessingOptions | None = None,
        **callbacks: Callable[..., None],
    ) -> str:
        self._require(record, DocumentRecord)
        return self.process_data(record, options, **callbacks)

    def cancel_processing(self, run_id: str) -> bool:
        """Cancel an active run. Returns False for unknown or finished runs."""
        processor = self._active.pop(run_id, None)
        if processor is None:
            return False
        processor.cancel()
        return True

    def cancel_all_processing(self) -> int:
        """Cancel and deregister every active run; returns how many were cancelled."""
        processors = list(self._active.values())
        self._active.clear()
        for processor in processors:
            processor.cancel()
        if processors:
            Log.info(f"Cancelled {len(processors)} active run(s)")
        return len(processors)

    def get_processing_status(self, run_id: str) -> StatusSnapshot | None:
        processor = self._active.get(run_id)
        return processor.get_status() if processor is not None else None

    def get_all_processing_status(self) -> dict[str, StatusSnapshot]:
        return {run_id: processor.get_status() for run_id, processor in self._active.items()}

    @property
    def active_runs(self) -> int:
        return len(self._active)

    async def join(self) -> None:
        """Wait until every run scheduled by ``process_data`` has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _prepare(
        self,
        record: MediaRecord,
        on_progress: ProgressCallback | None,
        on_complete: CompleteCallback | None,
        on_error: ErrorCallback | None,
    ) -> BaseProcessor:
        processor = self._factory.create(record.kind)
        self._wire(processor, on_progress, on_complete, on_error)
        return processor

    def _register(self, processor: BaseProcessor, record: MediaRecord) -> None:
        self._active[processor.run_id] = processor
        Log.info(f"Dispatched {record.kind.value} record {record.id} as run {processor.run_id}")

    def _wire(
        self,
        processor: BaseProcessor,
        on_progress: ProgressCallback | None,
        on_complete: CompleteCallback | None,
        on_error: ErrorCallback | None,
    ) -> None:
        run_id = processor.run_id

        def relay(event: ProcessingEvent) -> None:
            if event.kind is EventKind.PROGRESS:
                if on_progress is not None:
                    on_progress(float(event.payload["progress"]))  # type: ignore[arg-type]
                return
            if event.kind not in TERMINAL_EVENTS:
                return
            self._active.pop(run_id, None)
            for kind in EventKind:
                processor.off(kind, relay)
            if event.kind is EventKind.COMPLETED:
                if on_complete is not None:
                    on_complete(event.payload["result"])  # type: ignore[arg-type]
            elif on_error is not None:
                on_error(str(event.payload.get("error", "")))

        for kind in EventKind:
            processor.on(kind, relay)

    async def _execute(
        self,
        processor: BaseProcessor,
        record: MediaRecord,
        options: ProcessingOptions | None,
    ) -> ProcessingResult:
        try:
            if self._slots is None:
                return await processor.process(record, options)
            async with self._slots:
                return await processor.process(record, options)
        except asyncio.CancelledError:
            # Cancelled while waiting for a slot; a started run has already ended itself.
            processor.abandon()
            raise

    @staticmethod
    def _require(record: MediaRecord, record_type: type[MediaRecord]) -> None:
        if not isinstance(record, record_type):
            raise InputError(f"Expected {record_type.__name__}, got {type(record).__name__}")


def build_media_service(settings: Settings, files_root: Path | None = None) -> MediaService:
    """Composition root for the service: wire adapters from settings."""
    return MediaService(
        build_processor_factory(settings, files_root),
        max_concurrent_runs=settings.max_concurrent_runs,
    )
