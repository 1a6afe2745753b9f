"""
LLM Provider Abstractions for booq.

Provides a unified interface for:
- Gemini (Google Generative Language API, needs an API key)
- Ollama (local and remote, no key)
"""

import logging
from typing import Optional

from ...config import LLMConfig
from .base import BaseLLMProvider, ProviderConfig, LLMResponse
from .gemini import GeminiProvider, GEMINI_BASE_URL
from .ollama import OllamaProvider

logger = logging.getLogger(__name__)


def create_provider(llm_config: LLMConfig) -> Optional[BaseLLMProvider]:
    """
    Build the configured provider.

    Args:
        llm_config: The ``llm`` section of the booq configuration

    Returns:
        A provider, or None when the provider needs a credential that is not
        configured

    Raises:
        ValueError: If the provider name is unknown
    """
    if not llm_config.is_configured:
        logger.debug(f"LLM provider '{llm_config.provider}' has no API key; AI features disabled")
        return None

    settings = dict(
        model=llm_config.model,
        temperature=llm_config.temperature,
        max_tokens=llm_config.max_tokens,
    )

    if llm_config.provider == "gemini":
        return GeminiProvider(ProviderConfig(
            base_url=GEMINI_BASE_URL,
            api_key=llm_config.resolved_api_key(),
            **settings
        ))
    if llm_config.provider == "ollama":
        return OllamaProvider.remote(host=llm_config.host, port=llm_config.port, **settings)

    raise ValueError(f"Unknown LLM provider: {llm_config.provider}")


__all__ = [
    'BaseLLMProvider',
    'ProviderConfig',
    'LLMResponse',
    'GeminiProvider',
    'OllamaProvider',
    'create_provider',
]
