"""
Google Books search.

Looks up candidate books by free-text query to pre-fill the add form.
"""

import asyncio
import logging
from typing import Dict, Any, Optional

import aiohttp

from .result import LookupResult

logger = logging.getLogger(__name__)

GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"
MAX_RESULTS_LIMIT = 40  # API limit

EMPTY_QUERY_ERROR = "Please enter a search term."
NO_RESULTS_MESSAGE = "No books found for your search. Try different terms or add manually."
UNKNOWN_AUTHOR = "Unknown Author"


class GoogleBooksSearch:
    """Search the Google Books volumes API."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 15.0):
        """
        Args:
            api_key: Optional Books API key (works without one, rate limited)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = GOOGLE_BOOKS_URL
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _fetch(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fetch one page of volumes.

        Raises:
            aiohttp.ClientError: On network errors or a non-200 status
            ValueError: If the body is not JSON
        """
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(self.base_url, params=params) as response:
                response.raise_for_status()
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ValueError(f"Unexpected response from Google Books: {e}") from e

    @staticmethod
    def parse_volume(volume_info: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map a volumeInfo object to a book draft.

        Args:
            volume_info: ``volumeInfo`` from the API response

        Returns:
            Draft with title, author, description, cover_image_url, publisher
            and published_date
        """
        authors = volume_info.get('authors') or []
        return {
            'title': volume_info.get('title', ''),
            'author': authors[0] if authors else UNKNOWN_AUTHOR,
            'description': volume_info.get('description', ''),
            'cover_image_url': (volume_info.get('imageLinks') or {}).get('thumbnail', ''),
            'publisher': volume_info.get('publisher', ''),
            'published_date': volume_info.get('publishedDate', ''),
        }

    async def search(self, query: str, max_results: int = 10) -> LookupResult:
        """
        Search for books by query.

        Failures never raise; they are reported through ``LookupResult.error``.

        Args:
            query: Free-text search query
            max_results: Maximum number of results

        Returns:
            LookupResult with candidate drafts
        """
        query = (query or "").strip()
        if not query:
            return LookupResult(error=EMPTY_QUERY_ERROR)

        params = {
            'q': query,
            'maxResults': max(1, min(max_results, MAX_RESULTS_LIMIT)),
        }
        if self.api_key:
            params['key'] = self.api_key

        try:
            data = await self._fetch(params)
        except aiohttp.ClientResponseError as e:
            logger.error(f"Google Books search failed with status {e.status}")
            return LookupResult(error=f"Book search failed (HTTP {e.status}). Please try again.")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error during Google Books search: {e}")
            return LookupResult(error="Could not reach Google Books. Check your connection and try again.")
        except ValueError as e:
            logger.error(f"Google Books search for '{query}' returned bad data: {e}")
            return LookupResult(error="Google Books returned an unexpected response.")

        if not isinstance(data, dict):
            return LookupResult(error="Google Books returned an unexpected response.")

        books = [
            self.parse_volume(item.get('volumeInfo') or {})
            for item in (data.get('items') or [])
        ][:max_results]

        if not books:
            logger.info(f"No Google Books results for '{query}'")
            return LookupResult(message=NO_RESULTS_MESSAGE)

        return LookupResult(books=books)
