"""
Gemini LLM Provider.

Talks to the Google Generative Language REST API. Requires an API key.
"""

import json
import logging
from typing import Dict, Any, List, Optional, AsyncIterator

import httpx

from ...exceptions import ProviderError
from .base import BaseLLMProvider, ProviderConfig, LLMResponse, raise_for_status

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(BaseLLMProvider):
    """
    Gemini LLM provider.

    Supports:
    - Text completions (generateContent)
    - JSON mode (responseMimeType=application/json)
    - Streaming chat (streamGenerateContent over server-sent events)
    """

    @property
    def name(self) -> str:
        return "gemini"

    @classmethod
    def with_key(cls, api_key: str, model: str = "gemini-2.5-flash", **kwargs) -> 'GeminiProvider':
        """
        Create provider for the public Gemini endpoint.

        Args:
            api_key: Google AI Studio API key
            model: Model name
            **kwargs: Additional config parameters

        Returns:
            Configured GeminiProvider
        """
        config = ProviderConfig(
            base_url=GEMINI_BASE_URL,
            api_key=api_key,
            model=model,
            **kwargs
        )
        return cls(config)

    def _client_headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.config.api_key or ""}

    def _generation_config(self, kwargs: Dict[str, Any], json_mode: bool = False) -> Dict[str, Any]:
        generation = {
            "temperature": kwargs.get("temperature", self.config.temperature),
            "topP": kwargs.get("top_p", self.config.top_p),
        }
        if "top_k" in kwargs:
            generation["topK"] = kwargs["top_k"]
        if self.config.max_tokens:
            generation["maxOutputTokens"] = self.config.max_tokens
        if json_mode:
            generation["responseMimeType"] = "application/json"
        return generation

    @staticmethod
    def _text_of(payload: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Generate completion using generateContent.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            json_mode: Request an application/json response
            **kwargs: Additional parameters (temperature, top_p, top_k)

        Returns:
            LLMResponse with generated text
        """
        if not self._client:
            await self.initialize()

        data = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self._generation_config(kwargs, json_mode),
        }
        if system_prompt:
            data["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        try:
            response = await self._client.post(
                f"/models/{self.config.model}:generateContent", json=data
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Could not reach Gemini: {e}") from e
        await raise_for_status(response)

        try:
            result = response.json()
            content = self._text_of(result)
            candidates = result.get("candidates") or [{}]
            usage = result.get("usageMetadata") or {}
            finish_reason = candidates[0].get("finishReason")
            usage = {
                "prompt_tokens": usage.get("promptTokenCount", 0),
                "completion_tokens": usage.get("candidatesTokenCount", 0),
            }
        except (ValueError, AttributeError, TypeError) as e:
            raise ProviderError(f"Gemini returned an unexpected response: {e}") from e

        return LLMResponse(
            content=content,
            model=result.get("modelVersion", self.config.model),
            finish_reason=finish_reason,
            usage=usage,
            raw_response=result,
        )

    async def chat_streaming(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AsyncIterator[str]:
        """
        Stream a chat reply using streamGenerateContent.

        Args:
            messages: Conversation so far
            system_prompt: Optional system instruction
            **kwargs: Additional parameters

        Yields:
            Text chunks as they are generated
        """
        if not self._client:
            await self.initialize()

        data = {
            "contents": [
                {
                    "role": "user" if m["role"] == "user" else "model",
                    "parts": [{"text": m["content"]}],
                }
                for m in messages
            ],
            "generationConfig": self._generation_config(kwargs),
        }
        if system_prompt:
            data["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        url = f"/models/{self.config.model}:streamGenerateContent"
        try:
            async with self._client.stream("POST", url, params={"alt": "sse"}, json=data) as response:
                await raise_for_status(response)

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    try:
                        chunk = json.loads(line[len("data:"):].strip())
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping malformed event from Gemini: {line[:80]}")
                        continue
                    if not isinstance(chunk, dict):
                        continue
                    text = self._text_of(chunk)
                    if text:
                        yield text
        except httpx.HTTPError as e:
            raise ProviderError(f"Could not reach Gemini: {e}") from e
