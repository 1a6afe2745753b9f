"""Decorators for booq CLI commands."""

import functools
import logging
from typing import Callable, Any
import typer
from rich.console import Console

from .exceptions import (
    BookNotFoundError, ShelfNotFoundError, ConfigurationError, LookupFailedError,
    ProviderError, BooqError, NOT_CONFIGURED_MESSAGE, user_message_for,
)

logger = logging.getLogger(__name__)
console = Console()


def handle_tracker_errors(func: Callable) -> Callable:
    """
    Decorator to handle common tracker operation errors.

    Centralizes error reporting for CLI commands:
    - BookNotFoundError / ShelfNotFoundError: unknown id
    - ConfigurationError: AI feature used without an API key
    - LookupFailedError / ProviderError: external service failed
    - ValueError: Invalid data or arguments
    - General exceptions: Unexpected errors
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except (BookNotFoundError, ShelfNotFoundError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1)
        except ConfigurationError:
            console.print(f"[bold red]Error:[/bold red] {NOT_CONFIGURED_MESSAGE}")
            raise typer.Exit(code=1)
        except (LookupFailedError, ProviderError) as e:
            console.print(f"[bold red]Error:[/bold red] {user_message_for(e, 'Request failed.')}")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {e}")
            raise typer.Exit(code=1)
        except BooqError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=1)

    return wrapper
