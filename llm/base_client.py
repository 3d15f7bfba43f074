"""Base LLM client interface."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Iterator
from pydantic import BaseModel


class Message(BaseModel):
    """Chat message."""
    role: str  # "system", "user", "assistant"
    content: str


class LLMResponse(BaseModel):
    """Response from LLM."""
    content: str
    model: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients.

    One implementation exists per provider; the router selects an instance by
    the provider field of the chosen model tier.
    """

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> LLMResponse:
        """
        Send chat completion request.

        Args:
            messages: List of messages in conversation
            model: Optional model override for this call
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response

        Returns:
            LLMResponse with generated content

        Raises:
            ConfigurationError: If the client has no credentials
            ProviderError: If the request fails or returns no content
        """
        pass

    @abstractmethod
    def stream(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> Iterator[str]:
        """
        Stream a chat completion as text fragments in arrival order.

        Raises:
            ConfigurationError: If the client has no credentials
            ProviderError: If the request fails
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of the LLM provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the default model being used."""
        pass

    def is_available(self) -> bool:
        """Whether the client has what it needs to make requests."""
        return True

    @staticmethod
    def build_messages(system_prompt: str, user_prompt: str) -> List[Message]:
        """System + user message pair used for generation requests."""
        return [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_prompt),
        ]
