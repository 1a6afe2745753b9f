"""
Ollama LLM Provider.

Supports both local and remote Ollama instances.
"""

import json
import logging
from typing import Dict, Any, List, Optional, AsyncIterator

import httpx

from ...exceptions import ProviderError
from .base import BaseLLMProvider, ProviderConfig, LLMResponse, raise_for_status

logger = logging.getLogger(__name__)


class OllamaProvider(BaseLLMProvider):
    """
    Ollama LLM provider.

    Supports:
    - Local Ollama (default: http://localhost:11434)
    - Remote Ollama (e.g., a GPU box on the LAN)
    - Streaming chat
    - JSON mode
    """

    @property
    def name(self) -> str:
        return "ollama"

    @classmethod
    def local(cls, model: str = "llama3.2", **kwargs) -> 'OllamaProvider':
        """
        Create provider for local Ollama instance.

        Args:
            model: Model name (e.g., 'llama3.2', 'mistral')
            **kwargs: Additional config parameters

        Returns:
            Configured OllamaProvider
        """
        config = ProviderConfig(
            base_url="http://localhost:11434",
            model=model,
            **kwargs
        )
        return cls(config)

    @classmethod
    def remote(
        cls,
        host: str,
        port: int = 11434,
        model: str = "llama3.2",
        **kwargs
    ) -> 'OllamaProvider':
        """
        Create provider for remote Ollama instance.

        Args:
            host: Remote host (e.g., '192.168.1.100')
            port: Ollama port (default: 11434)
            model: Model name
            **kwargs: Additional config parameters

        Returns:
            Configured OllamaProvider
        """
        config = ProviderConfig(
            base_url=f"http://{host}:{port}",
            model=model,
            **kwargs
        )
        return cls(config)

    def _options(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        options = {
            "temperature": kwargs.get("temperature", self.config.temperature),
            "top_p": kwargs.get("top_p", self.config.top_p),
        }
        if self.config.max_tokens:
            options["num_predict"] = self.config.max_tokens
        return options

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Generate completion using Ollama.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            json_mode: Use Ollama's JSON format mode
            **kwargs: Additional parameters (temperature, top_p)

        Returns:
            LLMResponse with generated text
        """
        if not self._client:
            await self.initialize()

        data = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": self._options(kwargs),
        }
        if system_prompt:
            data["system"] = system_prompt
        if json_mode:
            data["format"] = "json"

        try:
            response = await self._client.post("/api/generate", json=data)
        except httpx.HTTPError as e:
            raise ProviderError(f"Could not reach Ollama at {self.config.base_url}: {e}") from e
        await raise_for_status(response)

        try:
            result = response.json()
            content = result["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError(f"Ollama returned an unexpected response: {e}") from e

        return LLMResponse(
            content=content,
            model=result.get("model", self.config.model),
            finish_reason=result.get("done_reason"),
            usage={
                "prompt_tokens": result.get("prompt_eval_count", 0),
                "completion_tokens": result.get("eval_count", 0),
            },
            raw_response=result,
        )

    async def chat_streaming(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AsyncIterator[str]:
        """
        Stream a chat reply from /api/chat.

        Args:
            messages: Conversation so far
            system_prompt: Optional system instruction
            **kwargs: Additional parameters

        Yields:
            Text chunks as they are generated
        """
        if not self._client:
            await self.initialize()

        chat = [{"role": m["role"], "content": m["content"]} for m in messages]
        if system_prompt:
            chat.insert(0, {"role": "system", "content": system_prompt})

        data = {
            "model": self.config.model,
            "messages": chat,
            "stream": True,
            "options": self._options(kwargs),
        }

        try:
            async with self._client.stream("POST", "/api/chat", json=data) as response:
                await raise_for_status(response)

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        chunk = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping non-JSON line from Ollama: {line[:80]}")
                        continue
                    if not isinstance(chunk, dict):
                        continue
                    content = chunk.get("message", {}).get("content")
                    if content:
                        yield content
                    if chunk.get("done", False):
                        break
        except httpx.HTTPError as e:
            raise ProviderError(f"Could not reach Ollama at {self.config.base_url}: {e}") from e
