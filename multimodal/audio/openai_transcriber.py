import math

import httpx
import openai

from multimodal.audio.base import BaseTranscriber
from multimodal.audio.decoder import DecodedAudio
from multimodal.audio.exceptions import TranscriptionError, TranscriptionNetworkError
from multimodal.processor.results import LanguageDetection, TranscriptSegment, Transcription


class OpenAITranscriber(BaseTranscriber):
    """Transcriber built on the OpenAI-compatible audio transcription API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._model = model
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    async def transcribe(
        self,
        audio: DecodedAudio,
        wav_bytes: bytes,
        language: str | None = None,
    ) -> Transcription:
        _ = audio
        iso_language = language.split("-")[0].lower() if language else None
        try:
            response = await self._client.audio.transcriptions.create(
                model=self._model,
                file=("clip.wav", wav_bytes, "audio/wav"),
                response_format="verbose_json",
                **({"language": iso_language} if iso_language else {}),
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise TranscriptionNetworkError(
                f"Transcription provider network error: {exc}"
            ) from exc
        except openai.APIError as exc:
            raise TranscriptionNetworkError(
                f"Transcription provider API error: {exc}"
            ) from exc

        text = getattr(response, "text", None)
        if text is None:
            raise TranscriptionError("Transcription provider returned no text")
        segments = [
            TranscriptSegment(
                start=float(segment.start),
                end=float(segment.end),
                text=segment.text.strip(),
                confidence=self._confidence(getattr(segment, "avg_logprob", None)),
            )
            for segment in (getattr(response, "segments", None) or [])
        ]
        detected = getattr(response, "language", None) or language
        return Transcription(
            text=text.strip(),
            segments=segments,
            language=LanguageDetection(language=detected, confidence=1.0) if detected else None,
        )

    @staticmethod
    def _confidence(avg_logprob: float | None) -> float:
        if avg_logprob is None:
            return 0.0
        return max(0.0, min(1.0, math.exp(avg_logprob)))
