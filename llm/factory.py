"""LLM client factory."""

import logging
from enum import Enum
from typing import Dict, Optional

from .base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


def create_llm_client(
    provider: LLMProvider,
    api_key: Optional[str] = None,
    model: Optional[str] = None
) -> BaseLLMClient:
    """
    Create an LLM client for the specified provider.

    Args:
        provider: LLM provider (openai or anthropic)
        api_key: API key for the provider
        model: Optional default model override

    Returns:
        Configured LLM client

    Raises:
        ValueError: If provider is not supported
    """
    # Imported here so schemas can reference LLMProvider without loading SDKs
    from .openai_client import OpenAIClient
    from .anthropic_client import AnthropicClient

    if provider == LLMProvider.OPENAI:
        return OpenAIClient(api_key=api_key, model=model)
    elif provider == LLMProvider.ANTHROPIC:
        return AnthropicClient(api_key=api_key, model=model)
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")


def create_llm_clients(api_keys: Dict[LLMProvider, Optional[str]]) -> Dict[LLMProvider, BaseLLMClient]:
    """
    Create one client per provider that has an API key.

    Args:
        api_keys: Mapping of provider to API key (None skips the provider)

    Returns:
        Mapping of provider to initialized client
    """
    clients = {}
    for provider, api_key in api_keys.items():
        if not api_key:
            logger.info(f"Skipping {provider.value}: no API key configured")
            continue
        clients[provider] = create_llm_client(provider, api_key=api_key)
    return clients
