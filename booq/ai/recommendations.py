"""
Recommendation chat ("Q Bot").

A ``RecommendationChat`` owns one conversation with the LLM, created on first
use and kept for the lifetime of the chat object. Replies stream back as text
deltas.
"""

import logging
from typing import Callable, Dict, List, Optional, AsyncIterator

from ..exceptions import ConfigurationError, NOT_CONFIGURED_MESSAGE, user_message_for
from .llm_providers.base import BaseLLMProvider

logger = logging.getLogger(__name__)

PERSONA_INSTRUCTION = (
    "You are Q Bot, a friendly and knowledgeable book recommendation assistant. "
    "Your goal is to help users discover new books based on their preferences, "
    "favorite genres, authors, or books they have already enjoyed. Give concise "
    "recommendations including title and author. You may ask for more details "
    "to refine your suggestions if needed. Try to give 2-3 recommendations when "
    "possible. Format book titles in bold (markdown: **Book Title**)."
)
CHAT_TEMPERATURE = 0.6
CHAT_TOP_P = 0.9
CHAT_TOP_K = 30

GENERIC_CHAT_ERROR = "Error communicating with Q Bot."


class ChatSession:
    """
    One ongoing conversation.

    The history only ever holds completed exchanges: a user message is kept
    once its reply has streamed in full, and dropped if the reply fails or is
    abandoned, so the session can be reused after an error.
    """

    def __init__(self, provider: BaseLLMProvider, system_prompt: str = PERSONA_INSTRUCTION):
        self.provider = provider
        self.system_prompt = system_prompt
        self.history: List[Dict[str, str]] = []

    async def send(self, text: str) -> AsyncIterator[str]:
        """
        Send a message and stream the reply.

        Closing the iterator early cancels the request.

        Args:
            text: The user's message

        Yields:
            Text deltas in arrival order

        Raises:
            ProviderError: If the provider request fails mid-stream
        """
        messages = self.history + [{"role": "user", "content": text}]
        reply = []

        stream = self.provider.chat_streaming(
            messages,
            system_prompt=self.system_prompt,
            temperature=CHAT_TEMPERATURE,
            top_p=CHAT_TOP_P,
            top_k=CHAT_TOP_K,
        )
        try:
            async for chunk in stream:
                reply.append(chunk)
                yield chunk
        finally:
            await stream.aclose()

        self.history = messages + [{"role": "assistant", "content": "".join(reply)}]


class RecommendationChat:
    """Owner of the single recommendation chat session."""

    def __init__(self, provider: Optional[BaseLLMProvider]):
        """
        Args:
            provider: Configured provider, or None when AI is not configured
        """
        self.provider = provider
        self._session: Optional[ChatSession] = None

    @property
    def available(self) -> bool:
        return self.provider is not None

    def get_or_create_session(self) -> ChatSession:
        """
        Return the chat session, creating it on first use.

        Raises:
            ConfigurationError: If no provider is configured
        """
        if self._session is not None:
            return self._session
        if self.provider is None:
            raise ConfigurationError("Recommendation chat needs an LLM API key")
        self._session = ChatSession(self.provider)
        logger.debug("Started recommendation chat session")
        return self._session

    async def stream(self, text: str) -> AsyncIterator[str]:
        """Send ``text`` on the session and yield the reply's deltas."""
        session = self.get_or_create_session()
        async for chunk in session.send(text):
            yield chunk

    async def send_message(
        self,
        session: Optional[ChatSession],
        text: str,
        on_chunk: Callable[[str], None],
        on_done: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        """
        Send a message and relay the reply through callbacks.

        ``on_chunk`` gets every non-empty delta in order. Exactly one of
        ``on_done`` or ``on_error`` is called afterwards. No retry is made.

        Args:
            session: Session to use (None when AI is not configured)
            text: The user's message
            on_chunk: Called with each text delta
            on_done: Called once when the reply completed
            on_error: Called once with a user-facing message on failure
        """
        if session is None or self.provider is None:
            on_error(NOT_CONFIGURED_MESSAGE)
            return

        try:
            async for chunk in session.send(text):
                if chunk:
                    on_chunk(chunk)
        except Exception as e:
            logger.error(f"Recommendation chat failed: {e}")
            on_error(user_message_for(e, GENERIC_CHAT_ERROR))
            return

        on_done()
