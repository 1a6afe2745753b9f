"""Exception hierarchy for booq."""


class BooqError(Exception):
    """Base class for booq errors."""


class ConfigurationError(BooqError):
    """A feature was used without the configuration (credential) it needs."""


class BookNotFoundError(BooqError):
    """No book with the given id exists in the collection."""

    def __init__(self, book_id: str):
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class ShelfNotFoundError(BooqError):
    """No custom shelf with the given id exists."""

    def __init__(self, shelf_id: str):
        super().__init__(f"Shelf not found: {shelf_id}")
        self.shelf_id = shelf_id


class ProviderError(BooqError):
    """An external LLM provider request failed."""


class InvalidCredentialError(ProviderError):
    """The external provider rejected the configured API key."""


class LookupFailedError(BooqError):
    """A book lookup failed; the message is safe to show to the user."""


INVALID_KEY_MESSAGE = "The AI provider rejected the configured API key. Please check your configuration."
NOT_CONFIGURED_MESSAGE = "AI features are not configured. Set an API key with 'booq config --llm-api-key' or GEMINI_API_KEY."


def user_message_for(error: Exception, fallback: str) -> str:
    """
    Turn a provider failure into a short message for the user.

    A rejected credential gets a fixed explanation; other failures use the
    error text, or ``fallback`` when there is none.
    """
    if isinstance(error, InvalidCredentialError):
        return INVALID_KEY_MESSAGE
    if isinstance(error, ConfigurationError):
        return NOT_CONFIGURED_MESSAGE
    return str(error) or fallback
