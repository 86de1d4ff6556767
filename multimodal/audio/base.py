from abc import ABC, abstractmethod

from multimodal.audio.decoder import DecodedAudio
from multimodal.processor.results import Transcription


class BaseTranscriber(ABC):
    """Contract for all speech-to-text adapters."""

    @abstractmethod
    async def transcribe(
        self,
        audio: DecodedAudio,
        wav_bytes: bytes,
        language: str | None = None,
    ) -> Transcription:
        """Transcribe a decoded clip.

        Args:
            audio: Decoded samples of the clip.
            wav_bytes: The same clip encoded as WAV, for providers that take files.
            language: Optional language hint (e.g. "en", "ja-JP").

        Returns:
            Transcription with full text, timed segments and detected language.

        Raises:
            TranscriptionError: on any failure.
        """
