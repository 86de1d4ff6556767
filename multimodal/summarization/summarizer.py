"""AI-powered document summarizer."""

from pathlib import Path

from multimodal.logging.logger import Log
from multimodal.summarization.client_base import BaseTextGenerator
from multimodal.summarization.exceptions import SummarizationError
from multimodal.summarization.prompt_loader import load_prompt_template

DEFAULT_SYSTEM_PROMPT = "You write short, faithful summaries of documents."


class Summarizer:
    """Summarizes extracted document text using a text generation client."""

    def __init__(
        self,
        *,
        client: BaseTextGenerator,
        model: str,
        temperature: float = 0.2,
        min_chars: int = 100,
        prompt_template_path: Path | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(1.0, temperature))
        self._min_chars = min_chars
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)

    @property
    def min_chars(self) -> int:
        return self._min_chars

    async def generate(self, prompt: str) -> str:
        """Send one prompt to the configured model and return its raw reply."""
        return await self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
        )

    async def summarize(self, text: str) -> str | None:
        """Return a summary of ``text``, or None when it is shorter than ``min_chars``."""
        if len(text) < self._min_chars:
            Log.debug(f"Text has {len(text)} chars, below {self._min_chars}; skipping summary")
            return None

        summary = (await self.generate(self._prompt_template.format(text=text))).strip()
        if not summary:
            raise SummarizationError("AI returned an empty summary")

        Log.info(f"Summarized {len(text)} chars into {len(summary)} chars")
        return summary
