import asyncio
from collections.abc import Callable
from typing import cast

import numpy as np

from multimodal.audio import dsp
from multimodal.audio.base import BaseTranscriber
from multimodal.audio.decoder import AudioDecodeContext, DecodedAudio
from multimodal.logging.logger import Log
from multimodal.processor.base import BaseProcessor, Stage
from multimodal.processor.exceptions import InputError
from multimodal.processor.file_loader import MediaLoader
from multimodal.processor.models import (
    AudioProcessingOptions,
    AudioRecord,
    MediaKind,
    MediaRecord,
    ProcessingOptions,
)
from multimodal.processor.results import AudioProcessingResult

SampleTransform = Callable[[np.ndarray], np.ndarray]


class AudioProcessor(BaseProcessor):
    """Decodes an audio clip and runs transcription and sample transforms on it.

    Decoding acquires an ``AudioDecodeContext`` that stays open for the run
    (stages re-encode their output through it) and is released on every exit.
    """

    kind = MediaKind.AUDIO
    record_type = AudioRecord
    options_type = AudioProcessingOptions

    def __init__(
        self,
        loader: MediaLoader,
        transcriber: BaseTranscriber,
        *,
        silence_threshold: float = 0.01,
        silence_frame_samples: int = 1024,
        noise_highpass_hz: float = 150.0,
        noise_lowpass_hz: float = 1000.0,
        decoder_factory: Callable[[], AudioDecodeContext] = AudioDecodeContext,
        run_id: str | None = None,
    ) -> None:
        super().__init__(loader, run_id=run_id)
        self._transcriber = transcriber
        self._silence_threshold = silence_threshold
        self._silence_frame_samples = silence_frame_samples
        self._noise_highpass_hz = noise_highpass_hz
        self._noise_lowpass_hz = noise_lowpass_hz
        self._decoder_factory = decoder_factory
        self._context: AudioDecodeContext | None = None

    def _new_result(self, record: MediaRecord) -> AudioProcessingResult:
        return AudioProcessingResult(id=self.run_id, input_data=record)

    def _validate(self, record: MediaRecord, options: ProcessingOptions) -> None:
        super()._validate(record, options)
        options = cast(AudioProcessingOptions, options)
        if options.speed_factor is not None and options.speed_factor <= 0:
            raise InputError(f"speed_factor must be positive, got {options.speed_factor}")
        if options.volume_factor is not None and options.volume_factor < 0:
            raise InputError(f"volume_factor must not be negative, got {options.volume_factor}")

    async def _decode(self, record: AudioRecord, options: AudioProcessingOptions) -> DecodedAudio:
        raw = await self._loader.load(record, self._lifecycle.abort, options.max_size)
        self._context = self._decoder_factory()
        decoded = await asyncio.to_thread(self._context.decode, raw)
        Log.info(
            f"Decoded {decoded.duration:.2f}s of audio "
            f"({decoded.channels} ch @ {decoded.sample_rate} Hz) for run {self.run_id}"
        )
        return decoded

    def _plan_stages(
        self,
        decoded: DecodedAudio,
        result: AudioProcessingResult,
        options: AudioProcessingOptions,
    ) -> list[Stage]:
        stages: list[Stage] = []
        record = cast(AudioRecord, result.input_data)
        if options.transcription_language or (options.transcribe and record.transcript is None):
            stages.append(Stage("transcription", lambda: self._transcribe(decoded, result, options)))
        elif options.transcribe:
            # Upstream transcript is reused unless a language is requested.
            result.transcript = record.transcript
        if options.remove_silence:
            stages.append(Stage("silence_removal", lambda: self._remove_silence(decoded, result)))
        if options.reduce_noise:
            stages.append(Stage("noise_reduction", lambda: self._reduce_noise(decoded, result)))
        if options.speed_factor is not None or options.volume_factor is not None:
            stages.append(Stage("adjustment", lambda: self._adjust(decoded, result, options)))
        return stages

    async def _transcribe(
        self,
        decoded: DecodedAudio,
        result: AudioProcessingResult,
        options: AudioProcessingOptions,
    ) -> None:
        context = self._require_context()
        wav_bytes = await asyncio.to_thread(context.encode, decoded.samples, decoded.sample_rate)
        self._report("transcription", 0.3)
        transcription = await self._transcriber.transcribe(
            decoded,
            wav_bytes,
            language=options.transcription_language or options.language,
        )
        result.transcript = transcription.text
        result.segments = list(transcription.segments)
        result.language_detection = transcription.language

    async def _remove_silence(self, decoded: DecodedAudio, result: AudioProcessingResult) -> None:
        result.silence_removed_audio = await self._render(
            decoded,
            lambda samples: dsp.remove_silence(
                samples,
                threshold=self._silence_threshold,
                frame_samples=self._silence_frame_samples,
            ),
            "nosilence",
        )

    async def _reduce_noise(self, decoded: DecodedAudio, result: AudioProcessingResult) -> None:
        result.noise_reduced_audio = await self._render(
            decoded,
            lambda samples: dsp.band_pass(
                samples,
                decoded.sample_rate,
                low_hz=self._noise_highpass_hz,
                high_hz=self._noise_lowpass_hz,
            ),
            "noisereduced",
        )

    async def _adjust(
        self,
        decoded: DecodedAudio,
        result: AudioProcessingResult,
        options: AudioProcessingOptions,
    ) -> None:
        speed = options.speed_factor if options.speed_factor is not None else 1.0
        volume = options.volume_factor if options.volume_factor is not None else 1.0

        def transform(samples: np.ndarray) -> np.ndarray:
            adjusted = dsp.change_speed(samples, speed) if speed != 1.0 else samples
            return dsp.change_volume(adjusted, volume) if volume != 1.0 else adjusted

        result.adjusted_audio = await self._render(decoded, transform, "adjusted")

    async def _render(
        self,
        decoded: DecodedAudio,
        transform: SampleTransform,
        suffix: str,
    ) -> AudioRecord:
        context = self._require_context()

        def work() -> tuple[bytes, int]:
            samples = transform(decoded.samples)
            return context.encode(samples, decoded.sample_rate), int(samples.shape[0])

        wav_bytes, frames = await asyncio.to_thread(work)
        return AudioRecord(
            id=f"{self.run_id}-{suffix}",
            data=wav_bytes,
            duration=frames / decoded.sample_rate,
            format="wav",
            metadata={"sample_rate": decoded.sample_rate, "channels": decoded.channels},
        )

    def _require_context(self) -> AudioDecodeContext:
        if self._context is None:
            raise RuntimeError("Audio decode context is not initialized")
        return self._context

    async def _release(self) -> None:
        if self._context is None:
            return
        context, self._context = self._context, None
        await asyncio.to_thread(context.close)
        Log.debug(f"Released audio decode context for run {self.run_id}")
