from abc import ABC, abstractmethod


class BaseTextGenerator(ABC):
    """Contract for provider-specific text generation clients."""

    @abstractmethod
    async def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
    ) -> str:
        """Return provider response as plain text."""
