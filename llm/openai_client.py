"""OpenAI LLM client implementation."""

import os
import logging
from typing import Optional, List, Iterator

import openai
from openai import OpenAI

from errors import ConfigurationError, ProviderError
from .base_client import BaseLLMClient, Message, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    DEFAULT_MODEL = "gpt-4o"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Default model to use (default: gpt-4o)
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.client = None

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key)
            logger.info(f"OpenAI client initialized with model: {self.model}")
        else:
            logger.warning("No OpenAI API key provided")

    def _request_kwargs(
        self,
        messages: List[Message],
        model: Optional[str],
        temperature: float,
        max_tokens: int
    ) -> dict:
        if not self.client:
            raise ConfigurationError("OpenAI client not initialized. Check API key.")

        return {
            "model": model or self.model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "temperature": temperature,
            "max_completion_tokens": max_tokens,
        }

    def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> LLMResponse:
        """Send chat completion request to OpenAI."""
        kwargs = self._request_kwargs(messages, model, temperature, max_tokens)

        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit hit: {e}")
            raise ProviderError(str(e), provider="openai", rate_limited=True) from e
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise ProviderError(str(e), provider="openai") from e

        if not response.choices:
            raise ProviderError("OpenAI returned no choices", provider="openai")

        choice = response.choices[0]
        content = choice.message.content or ""
        if not content.strip():
            raise ProviderError("OpenAI returned empty content", provider="openai")

        # Extract usage
        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=content,
            model=kwargs["model"],
            usage=usage,
            finish_reason=choice.finish_reason
        )

    def stream(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> Iterator[str]:
        """Stream chat completion fragments from OpenAI."""
        kwargs = self._request_kwargs(messages, model, temperature, max_tokens)

        try:
            for chunk in self.client.chat.completions.create(stream=True, **kwargs):
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit hit while streaming: {e}")
            raise ProviderError(str(e), provider="openai", rate_limited=True) from e
        except openai.APIError as e:
            logger.error(f"OpenAI streaming error: {e}")
            raise ProviderError(str(e), provider="openai") from e

    def is_available(self) -> bool:
        return self.client is not None

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
