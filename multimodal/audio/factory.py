from multimodal.audio.base import BaseTranscriber
from multimodal.audio.example_transcriber import ExampleTranscriber
from multimodal.audio.openai_transcriber import OpenAITranscriber
from multimodal.config.settings import Settings


class TranscriberFactory:
    """Creates the configured transcriber adapter."""

    PROVIDERS = ("example", "openai")

    @classmethod
    def create(cls, settings: Settings) -> BaseTranscriber:
        provider = settings.transcription_provider.lower()
        if provider == "example":
            return ExampleTranscriber()
        if provider == "openai":
            return OpenAITranscriber(
                api_key=settings.transcription_openai_api_key,
                model=settings.transcription_openai_model_name,
                timeout_seconds=settings.transcription_openai_timeout_seconds,
            )
        raise ValueError(
            f"Unknown transcription provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
