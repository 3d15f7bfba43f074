"""Anthropic Claude LLM client implementation."""

import os
import logging
from typing import Optional, List, Iterator

import anthropic

from errors import ConfigurationError, ProviderError
from .base_client import BaseLLMClient, Message, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Default model to use (default: claude-sonnet-4-20250514)
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.client = None

        if self.api_key:
            self.client = anthropic.Anthropic(api_key=self.api_key)
            logger.info(f"Anthropic client initialized with model: {self.model}")
        else:
            logger.warning("No Anthropic API key provided")

    def _request_kwargs(
        self,
        messages: List[Message],
        model: Optional[str],
        temperature: float,
        max_tokens: int
    ) -> dict:
        if not self.client:
            raise ConfigurationError("Anthropic client not initialized. Check API key.")

        # Separate system message from conversation
        system_content = ""
        conversation_messages = []

        for msg in messages:
            if msg.role == "system":
                system_content += msg.content + "\n"
            else:
                conversation_messages.append({
                    "role": msg.role,
                    "content": msg.content
                })

        kwargs = {
            "model": model or self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation_messages,
        }

        if system_content:
            kwargs["system"] = system_content.strip()

        return kwargs

    def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> LLMResponse:
        """Send chat completion request to Anthropic."""
        kwargs = self._request_kwargs(messages, model, temperature, max_tokens)

        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            logger.warning(f"Anthropic rate limit hit: {e}")
            raise ProviderError(str(e), provider="anthropic", rate_limited=True) from e
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise ProviderError(str(e), provider="anthropic") from e

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )
        if not content.strip():
            raise ProviderError("Anthropic returned empty content", provider="anthropic")

        # Extract usage
        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        return LLMResponse(
            content=content,
            model=kwargs["model"],
            usage=usage,
            finish_reason=response.stop_reason
        )

    def stream(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> Iterator[str]:
        """Stream message text fragments from Anthropic."""
        kwargs = self._request_kwargs(messages, model, temperature, max_tokens)

        try:
            with self.client.messages.stream(**kwargs) as stream:
                for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.RateLimitError as e:
            logger.warning(f"Anthropic rate limit hit while streaming: {e}")
            raise ProviderError(str(e), provider="anthropic", rate_limited=True) from e
        except anthropic.APIError as e:
            logger.error(f"Anthropic streaming error: {e}")
            raise ProviderError(str(e), provider="anthropic") from e

    def is_available(self) -> bool:
        return self.client is not None

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "anthropic"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
