import asyncio
import io
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import soundfile as sf

from multimodal.audio.base import BaseTranscriber
from multimodal.audio.decoder import AudioDecodeContext
from multimodal.audio.example_transcriber import ExampleTranscriber
from multimodal.audio.exceptions import TranscriptionNetworkError
from multimodal.processor.audio_processor import AudioProcessor
from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.models import AudioProcessingOptions, AudioRecord, ProcessingStatus


class _TrackingContext(AudioDecodeContext):
    instances: list["_TrackingContext"] = []

    def __init__(self) -> None:
        super().__init__()
        _TrackingContext.instances.append(self)


def _make_processor(transcriber: BaseTranscriber | None = None) -> AudioProcessor:
    _TrackingContext.instances = []
    return AudioProcessor(
        MediaLoader(Path(".")),
        transcriber or ExampleTranscriber(),
        decoder_factory=_TrackingContext,
    )


def _frames(record: AudioRecord | None) -> int:
    assert record is not None and record.data is not None
    return sf.info(io.BytesIO(record.data)).frames


class TestAudioProcessor:
    @pytest.mark.asyncio
    async def test_double_speed_halves_duration(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(speed_factor=2.0)
        )
        assert result.status is ProcessingStatus.COMPLETED
        assert result.adjusted_audio is not None
        assert result.adjusted_audio.duration == pytest.approx(1.0)
        assert _frames(result.adjusted_audio) == 8000
        assert result.processed_audio is result.adjusted_audio

    @pytest.mark.asyncio
    async def test_silence_removal(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(remove_silence=True)
        )
        assert result.silence_removed_audio is not None
        assert _frames(result.silence_removed_audio) == 8 * 1024
        assert result.noise_reduced_audio is None
        assert result.adjusted_audio is None

    @pytest.mark.asyncio
    async def test_noise_reduction_keeps_length(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(reduce_noise=True)
        )
        assert _frames(result.noise_reduced_audio) == 16000
        assert result.noise_reduced_audio is not None
        assert result.noise_reduced_audio.format == "wav"

    @pytest.mark.asyncio
    async def test_transcription_fields(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes),
            AudioProcessingOptions(transcribe=True, transcription_language="es"),
        )
        assert result.transcript == "segment 1"
        assert result.segments is not None and len(result.segments) == 1
        assert result.language_detection is not None
        assert result.language_detection.language == "es"

    @pytest.mark.asyncio
    async def test_language_alone_enables_transcription(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(transcription_language="en")
        )
        assert result.transcript is not None

    @pytest.mark.asyncio
    async def test_existing_transcript_is_reused(self, wav_bytes: bytes) -> None:
        transcriber = MagicMock(spec=BaseTranscriber)
        transcriber.transcribe = AsyncMock()
        result = await _make_processor(transcriber).process(
            AudioRecord(data=wav_bytes, transcript="already transcribed"),
            AudioProcessingOptions(transcribe=True),
        )
        assert result.status is ProcessingStatus.COMPLETED
        assert result.transcript == "already transcribed"
        assert result.segments is None
        transcriber.transcribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_language_forces_transcription_over_existing_transcript(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes, transcript="old text"),
            AudioProcessingOptions(transcribe=True, transcription_language="fr"),
        )
        assert result.transcript == "segment 1"
        assert result.language_detection is not None
        assert result.language_detection.language == "fr"

    @pytest.mark.asyncio
    async def test_disabled_stages_leave_fields_empty(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(AudioRecord(data=wav_bytes))
        assert result.status is ProcessingStatus.COMPLETED
        assert result.transcript is None
        assert result.processed_audio is None

    @pytest.mark.asyncio
    async def test_context_released_after_success(self, wav_bytes: bytes) -> None:
        await _make_processor().process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(reduce_noise=True)
        )
        assert len(_TrackingContext.instances) == 1
        assert _TrackingContext.instances[0].closed

    @pytest.mark.asyncio
    async def test_context_released_after_failure(self, wav_bytes: bytes) -> None:
        transcriber = MagicMock(spec=BaseTranscriber)
        transcriber.transcribe = AsyncMock(side_effect=TranscriptionNetworkError("offline"))
        result = await _make_processor(transcriber).process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(transcribe=True)
        )
        assert result.status is ProcessingStatus.FAILED
        assert result.error == "Stage 'transcription' failed: offline"
        assert _TrackingContext.instances[0].closed

    @pytest.mark.asyncio
    async def test_context_released_after_cancel(self, wav_bytes: bytes) -> None:
        started = asyncio.Event()

        async def hang(*args: object, **kwargs: object) -> None:
            started.set()
            await asyncio.sleep(10)

        transcriber = MagicMock(spec=BaseTranscriber)
        transcriber.transcribe = AsyncMock(side_effect=hang)
        processor = _make_processor(transcriber)
        task = asyncio.create_task(
            processor.process(AudioRecord(data=wav_bytes), AudioProcessingOptions(transcribe=True))
        )
        await started.wait()

        processor.cancel()
        result = await task

        assert result.error_code == "cancelled"
        assert _TrackingContext.instances[0].closed

    @pytest.mark.asyncio
    async def test_undecodable_audio_fails(self) -> None:
        result = await _make_processor().process(
            AudioRecord(data=b"not audio"), AudioProcessingOptions(reduce_noise=True)
        )
        assert result.status is ProcessingStatus.FAILED
        assert result.error_code == "decode_error"
        assert _TrackingContext.instances[0].closed

    @pytest.mark.asyncio
    async def test_invalid_speed_is_input_error(self, wav_bytes: bytes) -> None:
        result = await _make_processor().process(
            AudioRecord(data=wav_bytes), AudioProcessingOptions(speed_factor=0)
        )
        assert result.error_code == "input_error"
