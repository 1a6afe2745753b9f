"""
Base abstract LLM provider interface.

This module defines the abstract base class that all LLM providers must implement.
"""

import json
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, AsyncIterator
from dataclasses import dataclass

import httpx

from ...exceptions import ProviderError, InvalidCredentialError

INVALID_KEY_MARKER = "API key not valid"


@dataclass
class ProviderConfig:
    """Connection and sampling settings for an LLM provider."""

    # Connection settings
    base_url: str
    api_key: Optional[str] = None

    # Model settings
    model: str = "default"
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    top_p: float = 0.9

    # Behavior settings
    timeout: float = 60.0


@dataclass
class LLMResponse:
    """Response from LLM completion."""

    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None  # tokens used
    raw_response: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "content": self.content,
            "model": self.model,
            "finish_reason": self.finish_reason,
            "usage": self.usage,
        }


async def raise_for_status(response: httpx.Response) -> None:
    """
    Raise a provider error for a failed HTTP response.

    Reads the body (needed for streamed responses) so that a rejected API key
    can be told apart from other failures.

    Raises:
        InvalidCredentialError: If the provider rejected the API key
        ProviderError: For any other HTTP error status
    """
    if not response.is_error:
        return

    await response.aread()
    body = response.text
    if INVALID_KEY_MARKER in body or response.status_code in (401, 403):
        raise InvalidCredentialError(f"Provider rejected the API key ({response.status_code})")
    raise ProviderError(f"Provider request failed with status {response.status_code}: {body[:200]}")


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    All LLM providers must implement this interface to ensure consistency
    across different backends (Gemini, Ollama).

    Messages passed to ``chat_streaming`` are dicts with ``role`` ("user" or
    "assistant") and ``content``.
    """

    def __init__(self, config: ProviderConfig):
        """
        Initialize the provider with configuration.

        Args:
            config: Provider configuration
        """
        self.config = config
        self._client: Optional[httpx.AsyncClient] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'gemini', 'ollama')."""
        pass

    def _client_headers(self) -> Dict[str, str]:
        return {}

    async def initialize(self) -> None:
        """Initialize HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers=self._client_headers(),
        )

    async def cleanup(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Generate a text completion.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt to set context
            json_mode: Ask the model to answer with JSON only
            **kwargs: Sampling overrides (temperature, top_p)

        Returns:
            LLMResponse with generated text

        Raises:
            ProviderError: If the request fails
        """
        pass

    @abstractmethod
    def chat_streaming(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AsyncIterator[str]:
        """
        Continue a conversation, streaming the reply.

        Args:
            messages: Conversation so far, ending with the user's message
            system_prompt: Optional system instruction
            **kwargs: Sampling overrides

        Yields:
            Text chunks as they are generated

        Raises:
            ProviderError: If the request fails
        """
        pass

    async def complete_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> Any:
        """
        Generate a JSON completion.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            **kwargs: Sampling overrides

        Returns:
            Parsed JSON value

        Raises:
            ProviderError: If the request fails or the answer is not JSON
        """
        response = await self.complete(prompt, system_prompt=system_prompt, json_mode=True, **kwargs)
        try:
            return json.loads(response.content)
        except json.JSONDecodeError as e:
            raise ProviderError(f"{self.name} returned invalid JSON: {e}") from e

    async def complete_streaming(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AsyncIterator[str]:
        """
        Generate a streaming text completion.

        A single-turn conversation over ``chat_streaming``.

        Yields:
            Text chunks as they are generated
        """
        messages = [{"role": "user", "content": prompt}]
        async for chunk in self.chat_streaming(messages, system_prompt=system_prompt, **kwargs):
            yield chunk

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.cleanup()
