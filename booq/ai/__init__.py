"""
AI features for booq.

- AI book search (structured JSON lookup)
- Recommendation chat ("Q Bot")
- Book sparks (discussion questions)
"""

from .book_search import AIBookSearch, parse_book_candidates
from .recommendations import RecommendationChat, ChatSession
from .spark import generate_book_spark

__all__ = [
    'AIBookSearch',
    'parse_book_candidates',
    'RecommendationChat',
    'ChatSession',
    'generate_book_spark',
]
