"""
Shared test helpers.
"""

from typing import Dict, List, Optional

import pytest

from booq.ai.llm_providers.base import BaseLLMProvider, ProviderConfig, LLMResponse


class ScriptedProvider(BaseLLMProvider):
    """
    LLM provider returning canned answers.

    ``reply`` is the completion text; ``chunks`` are streamed by
    ``chat_streaming``. An exception in ``error`` is raised by ``complete``, or
    by ``chat_streaming`` after the chunks have been sent.
    """

    def __init__(self, reply: str = "", chunks: Optional[List[str]] = None,
                 error: Optional[Exception] = None):
        super().__init__(ProviderConfig(base_url="http://fake", model="fake"))
        self.reply = reply
        self.chunks = chunks or []
        self.error = error
        self.calls: List[Dict] = []
        self.chat_calls: List[Dict] = []

    @property
    def name(self) -> str:
        return "scripted"

    async def complete(self, prompt, system_prompt=None, json_mode=False, **kwargs):
        self.calls.append({"prompt": prompt, "json_mode": json_mode, **kwargs})
        if self.error:
            raise self.error
        return LLMResponse(content=self.reply, model="fake")

    async def chat_streaming(self, messages, system_prompt=None, **kwargs):
        self.chat_calls.append({
            "messages": [dict(m) for m in messages],
            "system_prompt": system_prompt,
            **kwargs,
        })
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider
