"""Example text generation client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseTextGenerator and register the provider in SummarizerFactory.
"""

from multimodal.summarization.client_base import BaseTextGenerator


class ExampleClientAdapter(BaseTextGenerator):
    """Example adapter that echoes the opening of the text it was asked to summarize.

    No network calls. Useful for local development, tests, and as a template
    for building real provider adapters.
    """

    MAX_WORDS = 30

    async def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
    ) -> str:
        _ = model, temperature, system_prompt
        body = user_prompt.split("---", 1)[-1]
        words = body.split()
        summary = " ".join(words[: self.MAX_WORDS])
        return f"{summary}..." if len(words) > self.MAX_WORDS else summary
