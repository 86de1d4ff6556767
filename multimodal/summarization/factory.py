from typing import ClassVar

from multimodal.config.settings import Settings
from multimodal.summarization.example_client_adapter import ExampleClientAdapter
from multimodal.summarization.openai_client_adapter import OpenAIClientAdapter
from multimodal.summarization.summarizer import Summarizer


class SummarizerFactory:
    """Creates the configured summarizer."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> Summarizer:
        """Create a configured summarizer from application settings."""
        provider = settings.summarization_provider.lower()
        if provider == "example":
            return Summarizer(
                client=ExampleClientAdapter(),
                model="example",
                temperature=0.0,
                min_chars=settings.summary_min_chars,
            )
        client = OpenAIClientAdapter(
            api_key=settings.summarization_api_key,
            timeout_seconds=settings.summarization_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return Summarizer(
            client=client,
            model=settings.summarization_model_name,
            temperature=settings.summarization_temperature,
            min_chars=settings.summary_min_chars,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.summarization_base_url or "").strip()
            if not url:
                raise ValueError(
                    "summarization_base_url is required for "
                    "summarization_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return settings.summarization_base_url.strip() or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown summarization provider '{provider}'. Choose from: {supported}"
        )
