from abc import ABC, abstractmethod

from lab_analysis.gateway.models import Completion


class BaseCompletionClient(ABC):
    """Contract for provider-specific text and vision completion clients."""

    @abstractmethod
    async def complete_text(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        content: str,
        temperature: float,
        max_tokens: int,
        json_output: bool,
    ) -> Completion:
        """Return the provider answer for a text prompt plus content."""

    @abstractmethod
    async def complete_vision(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        image: bytes,
        mime_type: str,
        temperature: float,
        max_tokens: int,
        json_output: bool,
    ) -> Completion:
        """Return the provider answer for a prompt about one image."""
