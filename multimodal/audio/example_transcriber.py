"""Example transcriber adapter.

Use this module as a reference when implementing new speech-to-text adapters.
Implement BaseTranscriber and register the provider in TranscriberFactory.
"""

from multimodal.audio.base import BaseTranscriber
from multimodal.audio.decoder import DecodedAudio
from multimodal.processor.results import LanguageDetection, TranscriptSegment, Transcription


class ExampleTranscriber(BaseTranscriber):
    """Deterministic transcriber with no model behind it.

    Splits the clip into fixed-length segments with placeholder text, so
    segment timing always matches the decoded duration.
    """

    SEGMENT_SECONDS = 2.5
    DEFAULT_LANGUAGE = "en"

    async def transcribe(
        self,
        audio: DecodedAudio,
        wav_bytes: bytes,
        language: str | None = None,
    ) -> Transcription:
        _ = wav_bytes
        segments: list[TranscriptSegment] = []
        start = 0.0
        while start < audio.duration:
            end = min(start + self.SEGMENT_SECONDS, audio.duration)
            segments.append(
                TranscriptSegment(
                    start=round(start, 3),
                    end=round(end, 3),
                    text=f"segment {len(segments) + 1}",
                    confidence=0.9,
                )
            )
            start = end
        return Transcription(
            text=" ".join(segment.text for segment in segments),
            segments=segments,
            language=LanguageDetection(language=language or self.DEFAULT_LANGUAGE, confidence=0.97),
        )
