"""
AI-assisted book search.

Asks the configured LLM for up to three books matching a free-text query and
turns its JSON answer into book drafts. The model's output is untrusted: any
answer that isn't a usable JSON list of books yields no results rather than
an error.
"""

import json
import logging
import math
import re
from typing import Dict, Any, List, Optional

from ..exceptions import (
    ConfigurationError, ProviderError, InvalidCredentialError, LookupFailedError,
    INVALID_KEY_MESSAGE, user_message_for,
)
from ..lookup.result import LookupResult
from .llm_providers.base import BaseLLMProvider

logger = logging.getLogger(__name__)

MAX_AI_RESULTS = 3

SEARCH_PROMPT = """I am looking for details of books matching the query: "{query}".
Return a list of up to 3 books in JSON format.
Each book must have the fields "title" (string), "author" (string),
"description" (string, short, 2-3 sentences), "pages" (number),
"publishedDate" (string, YYYY or YYYY-MM-DD) and "genres" (array of strings,
e.g. ["Fiction", "Mystery"]).
If you find no reasonable results, return an empty JSON array [].
Make sure the JSON is valid. Example of one book:
{{
  "title": "One Hundred Years of Solitude",
  "author": "Gabriel Garcia Marquez",
  "description": "The novel follows seven generations of the Buendia family in the fictional town of Macondo.",
  "pages": 432,
  "publishedDate": "1967",
  "genres": ["Magical realism", "Family saga"]
}}"""

NO_RESULTS_MESSAGE = "No books found. Try different terms."

_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    text = text.strip()
    match = _FENCE_RE.match(text)
    if match and match.group(2):
        return match.group(2).strip()
    return text


def _is_page_count(value: Any) -> bool:
    """True for a finite number; JSON allows Infinity and NaN."""
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and math.isfinite(value))


def _coerce_book(item: Any) -> Optional[Dict[str, Any]]:
    """Keep the correctly typed fields of one model-provided book."""
    if not isinstance(item, dict):
        return None

    def text(key: str) -> Optional[str]:
        value = item.get(key)
        return value if isinstance(value, str) else None

    pages = item.get("pages")
    genres = item.get("genres")
    book = {
        "title": text("title"),
        "author": text("author"),
        "description": text("description"),
        "pages": pages if _is_page_count(pages) else None,
        "published_date": text("publishedDate"),
        "genres": genres if isinstance(genres, list) and all(isinstance(g, str) for g in genres) else [],
    }
    if not book["title"] or not book["author"]:
        return None
    if isinstance(book["pages"], float):
        book["pages"] = int(book["pages"])
    return book


def parse_book_candidates(content: str) -> List[Dict[str, Any]]:
    """
    Parse a model answer into book drafts.

    Accepts a JSON array (optionally inside a code fence) or a single book
    object. Anything else, including invalid JSON, gives an empty list.

    Args:
        content: Raw model output

    Returns:
        Up to three drafts with title, author, description, pages,
        published_date and genres
    """
    try:
        parsed = json.loads(strip_code_fence(content or ""))
    except json.JSONDecodeError:
        logger.warning("AI book search returned invalid JSON")
        return []

    if isinstance(parsed, dict) and parsed.get("title"):
        parsed = [parsed]
    if not isinstance(parsed, list):
        logger.warning(f"AI book search returned {type(parsed).__name__}, expected a list")
        return []

    books = [b for b in (_coerce_book(item) for item in parsed) if b]
    return books[:MAX_AI_RESULTS]


class AIBookSearch:
    """Book search backed by an LLM provider."""

    def __init__(self, provider: Optional[BaseLLMProvider]):
        """
        Args:
            provider: Configured provider, or None when AI is not configured
        """
        self.provider = provider

    @property
    def available(self) -> bool:
        return self.provider is not None

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Ask the model for books matching ``query``.

        Args:
            query: Free-text search query

        Returns:
            Up to three book drafts (possibly empty)

        Raises:
            ConfigurationError: If no provider is configured
            LookupFailedError: If the provider request failed
        """
        if self.provider is None:
            raise ConfigurationError("AI book search needs an LLM API key")

        try:
            response = await self.provider.complete(
                SEARCH_PROMPT.format(query=query),
                json_mode=True,
                temperature=0.3,
            )
        except ProviderError as e:
            logger.error(f"AI book search failed: {e}")
            if isinstance(e, InvalidCredentialError):
                raise LookupFailedError(INVALID_KEY_MESSAGE) from e
            raise LookupFailedError("Could not get book details. Please try again.") from e

        return parse_book_candidates(response.content)

    async def lookup(self, query: str) -> LookupResult:
        """
        Search and report the outcome in the shared lookup result shape.

        Args:
            query: Free-text search query

        Returns:
            LookupResult; configuration and provider failures become errors
        """
        if not (query or "").strip():
            return LookupResult(error="Please enter a search term.")
        try:
            books = await self.search(query)
        except ConfigurationError as e:
            return LookupResult(error=user_message_for(e, str(e)))
        except LookupFailedError as e:
            return LookupResult(error=str(e))

        if not books:
            return LookupResult(message=NO_RESULTS_MESSAGE)
        return LookupResult(books=books)
