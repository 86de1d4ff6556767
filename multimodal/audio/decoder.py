import io
import threading
from dataclasses import dataclass
from types import TracebackType

import numpy as np
import soundfile as sf

from multimodal.processor.exceptions import DecodeError, ProcessorError


@dataclass(frozen=True)
class DecodedAudio:
    """Float32 sample matrix shaped ``(frames, channels)``."""

    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0


class AudioDecodeContext:
    """Scoped libsndfile handle used to decode a clip and re-encode stage output.

    The handle is opened by ``decode`` and must be released with ``close``
    (or by leaving the ``with`` block) on every exit path of a run.
    """

    OUTPUT_FORMAT = "WAV"
    OUTPUT_SUBTYPE = "PCM_16"

    def __init__(self) -> None:
        self._file: sf.SoundFile | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def decode(self, raw: bytes) -> DecodedAudio:
        with self._lock:
            if self._closed:
                raise ProcessorError("Audio decode context has been released")
            if self._file is not None:
                self._file.close()
                self._file = None
            try:
                self._file = sf.SoundFile(io.BytesIO(raw))
                samples = self._file.read(dtype="float32", always_2d=True)
            except (RuntimeError, TypeError, ValueError) as exc:
                raise DecodeError(f"Failed to decode audio: {exc}") from exc
            return DecodedAudio(samples=samples, sample_rate=int(self._file.samplerate))

    def encode(self, samples: np.ndarray, sample_rate: int) -> bytes:
        if self._closed:
            raise ProcessorError("Audio decode context has been released")
        buffer = io.BytesIO()
        sf.write(
            buffer,
            samples,
            sample_rate,
            format=self.OUTPUT_FORMAT,
            subtype=self.OUTPUT_SUBTYPE,
        )
        return buffer.getvalue()

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
            self._closed = True

    def __enter__(self) -> "AudioDecodeContext":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
