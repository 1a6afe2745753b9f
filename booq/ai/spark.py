"""
Book sparks: a short discussion question about a book.
"""

import logging
from typing import Optional

from ..exceptions import (
    ConfigurationError, ProviderError, InvalidCredentialError, LookupFailedError,
    INVALID_KEY_MESSAGE,
)
from .llm_providers.base import BaseLLMProvider

logger = logging.getLogger(__name__)

SPARK_PROMPT = (
    'For the book "{title}" by {author}, write one concise question (1-2 '
    'sentences) that invites an interesting discussion about its content or themes.'
)
SPARK_FAILED_MESSAGE = "Could not generate a book spark. Please try again later."


async def generate_book_spark(provider: Optional[BaseLLMProvider], title: str, author: str) -> str:
    """
    Ask the model for a discussion question about a book.

    Args:
        provider: Configured provider, or None when AI is not configured
        title: Book title
        author: Book author

    Returns:
        The question, stripped of surrounding whitespace

    Raises:
        ConfigurationError: If no provider is configured
        LookupFailedError: If the request failed or the model returned nothing
    """
    if provider is None:
        raise ConfigurationError("Book sparks need an LLM API key")

    try:
        response = await provider.complete(
            SPARK_PROMPT.format(title=title, author=author),
            temperature=0.7,
            top_p=0.9,
            top_k=40,
        )
    except InvalidCredentialError as e:
        logger.error(f"Book spark failed: {e}")
        raise LookupFailedError(INVALID_KEY_MESSAGE) from e
    except ProviderError as e:
        logger.error(f"Book spark failed: {e}")
        raise LookupFailedError(SPARK_FAILED_MESSAGE) from e

    text = (response.content or "").strip()
    if not text:
        logger.warning(f"Empty book spark for '{title}'")
        raise LookupFailedError(SPARK_FAILED_MESSAGE)
    return text
