import asyncio
from pathlib import Path
import logging
from typing import List, Optional, Dict, Any
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.traceback import install
from rich.table import Table

from .decorators import handle_tracker_errors
from .exceptions import NOT_CONFIGURED_MESSAGE
from .models import Book, BookStatus

# Initialize Rich Traceback for better error messages
install(show_locals=False)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

# Main app
app = typer.Typer(help="booq - track the books you read, want to read and love.")

# Command groups
shelf_app = typer.Typer(help="Manage custom shelves")
layout_app = typer.Typer(help="Arrange the dashboard sections")
profile_app = typer.Typer(help="View or edit your reader profile")

# Register command groups
app.add_typer(shelf_app, name="shelf")
app.add_typer(layout_app, name="layout")
app.add_typer(profile_app, name="profile")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    booq - a personal book tracker.

    Catalog books, track reading status and progress, rate them, organize
    them on custom shelves and ask Q Bot for recommendations.
    """
    from .config import load_config

    if verbose or load_config().cli.verbose:
        logging.getLogger("booq").setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")


def _open_tracker(library_path: Path):
    from .tracker import BookTracker

    if not library_path.exists():
        console.print(f"[red]Error: Library not found: {library_path}[/red]")
        console.print("[yellow]Create one with: booq init <path>[/yellow]")
        raise typer.Exit(code=1)
    return BookTracker.open(library_path)


def _status_label(status: BookStatus) -> str:
    return status.display_name


def _format_rating(rating: Optional[float]) -> str:
    return f"{rating:g}★" if rating else "-"


def _books_table(books: List[Book], title: str = "Books") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Author", style="blue")
    table.add_column("Status", style="magenta")
    table.add_column("Rating", style="yellow", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("♥", justify="center")

    for book in books:
        progress = book.progress_percent
        table.add_row(
            book.id,
            book.title[:40],
            book.author[:30],
            _status_label(book.status),
            _format_rating(book.rating),
            f"{progress}%" if progress is not None else "-",
            "♥" if book.is_favorite else "",
        )
    return table


def _drafts_table(drafts: List[Dict[str, Any]], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Title", style="green")
    table.add_column("Author", style="blue")
    table.add_column("Published", style="magenta")
    table.add_column("Pages", justify="right")

    for index, draft in enumerate(drafts, 1):
        table.add_row(
            str(index),
            (draft.get("title") or "")[:50],
            (draft.get("author") or "")[:30],
            draft.get("published_date") or "?",
            str(draft["pages"]) if draft.get("pages") else "-",
        )
    return table


def _add_draft(drafts: List[Dict[str, Any]], index: int, library_path: Optional[Path]):
    """Add the ``index``-th (1-based) lookup result to the library."""
    if library_path is None:
        console.print("[red]Error: --add needs a library path[/red]")
        raise typer.Exit(code=1)
    if not 1 <= index <= len(drafts):
        console.print(f"[red]Error: No result #{index}[/red]")
        raise typer.Exit(code=1)

    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.add(drafts[index - 1])
        console.print(f"[green]✓ Added '{book.title}' by {book.author} (ID {book.id})[/green]")
    finally:
        tracker.close()


# ============================================================================
# Core Collection Commands
# ============================================================================

@app.command()
def init(
    library_path: Path = typer.Argument(..., help="Path to create the library"),
    echo_sql: bool = typer.Option(False, "--echo-sql", help="Echo SQL statements for debugging")
):
    """
    Initialize a new library.

    Example:
        booq init ~/booq
    """
    from .tracker import BookTracker
    from .db.session import DB_FILENAME

    if library_path.exists() and any(library_path.iterdir()):
        console.print(f"[yellow]Warning: Directory {library_path} already exists and is not empty[/yellow]")
        if not Confirm.ask("Continue anyway?"):
            raise typer.Exit(code=0)

    try:
        tracker = BookTracker.open(library_path, echo=echo_sql)
        tracker.close()
        console.print(f"[green]✓ Library initialized at {library_path}[/green]")
        console.print(f"  Database: {library_path / DB_FILENAME}")
        console.print("  Use 'booq add' to add books")
    except Exception as e:
        console.print(f"[red]Error initializing library: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
@handle_tracker_errors
def add(
    library_path: Path = typer.Argument(..., help="Path to library"),
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Book author"),
    status: str = typer.Option("tbr", "--status", "-s", help="tbr, in-progress, read or dnf"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Number of pages"),
    rating: Optional[float] = typer.Option(None, "--rating", "-r", help="Rating (0-5, half points)"),
    genre: Optional[List[str]] = typer.Option(None, "--genre", "-g", help="Genre (repeatable)"),
    shelf: Optional[List[str]] = typer.Option(None, "--shelf", help="Custom shelf ID (repeatable)"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="ISBN"),
    published: Optional[str] = typer.Option(None, "--published", help="Publication date (YYYY or YYYY-MM-DD)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Short description"),
    cover_url: Optional[str] = typer.Option(None, "--cover-url", help="Cover image URL"),
    is_favorite: bool = typer.Option(False, "--favorite", "-f", help="Mark as favorite"),
):
    """
    Add a book to the library.

    Examples:
        booq add ~/booq --title "Dune" --author "Frank Herbert" --pages 412
        booq add ~/booq -t "Piranesi" -a "Susanna Clarke" -s read -r 4.5 --favorite
    """
    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.add({
            "title": title,
            "author": author,
            "status": BookStatus.parse(status),
            "pages": pages,
            "rating": rating,
            "genres": genre or [],
            "custom_shelf_ids": shelf or [],
            "isbn": isbn,
            "published_date": published,
            "description": description,
            "cover_image_url": cover_url,
            "is_favorite": is_favorite,
        })
        console.print(f"[green]✓ Added '{book.title}' by {book.author} (ID {book.id})[/green]")
    finally:
        tracker.close()


@app.command(name="list")
@handle_tracker_errors
def list_books(
    library_path: Path = typer.Argument(..., help="Path to library"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by reading status"),
    shelf: Optional[str] = typer.Option(None, "--shelf", help="Filter by custom shelf ID"),
    favorites: bool = typer.Option(False, "--favorites", "-f", help="Only favorite books"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of books to show (defaults from config)"),
):
    """
    List books with optional filtering.

    Examples:
        booq list ~/booq
        booq list ~/booq --status reading
        booq list ~/booq --favorites
    """
    from .config import load_config

    if limit is None:
        limit = load_config().cli.page_size

    tracker = _open_tracker(library_path)
    try:
        books = tracker.books.list(
            status=BookStatus.parse(status) if status else None,
            shelf_id=shelf,
            favorites_only=favorites,
        )
        if not books:
            console.print("[yellow]No books found[/yellow]")
            return

        console.print(_books_table(books[:limit]))
        console.print(f"\n[dim]Showing {min(len(books), limit)} of {len(books)} books[/dim]")
    finally:
        tracker.close()


@app.command()
@handle_tracker_errors
def show(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """Show all details of a book."""
    from .exceptions import BookNotFoundError

    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.get(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        shelf_names = {s.id: s.name for s in tracker.shelves.list()}

        console.print(f"\n[bold green]{book.title}[/bold green] [dim]by[/dim] [bold]{book.author}[/bold]")
        if book.is_favorite:
            console.print("[red]♥ Favorite[/red]")
        console.print(f"  ID:        {book.id}")
        console.print(f"  Status:    {_status_label(book.status)}")
        console.print(f"  Rating:    {_format_rating(book.rating)}")
        if book.pages:
            console.print(f"  Progress:  {book.current_page or 0}/{book.pages} ({book.progress_percent}%)")
        if book.start_date:
            console.print(f"  Started:   {book.start_date}")
        if book.finish_date:
            console.print(f"  Finished:  {book.finish_date}")
        if book.published_date:
            console.print(f"  Published: {book.published_date}")
        if book.isbn:
            console.print(f"  ISBN:      {book.isbn}")
        if book.genres:
            console.print(f"  Genres:    {', '.join(book.genres)}")
        if book.custom_shelf_ids:
            names = [shelf_names.get(i, i) for i in book.custom_shelf_ids]
            console.print(f"  Shelves:   {', '.join(names)}")
        if book.description:
            console.print(f"\n[bold]Description[/bold]\n{book.description}")
        if book.notes:
            console.print(f"\n[bold]Notes[/bold]\n{book.notes}")
        if book.review:
            label = "Review (contains spoilers)" if book.contains_spoilers else "Review"
            console.print(f"\n[bold]{label}[/bold]\n{book.review}")
    finally:
        tracker.close()


# ============================================================================
# Personal Reading Commands (Status, Progress, Ratings, Favorites)
# ============================================================================

@app.command()
@handle_tracker_errors
def status(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
    new_status: str = typer.Option(..., "--status", "-s", help="tbr, in-progress, read or dnf"),
):
    """
    Set a book's reading status.

    Example:
        booq status 1712345678901 ~/booq --status read
    """
    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.set_status(book_id, BookStatus.parse(new_status))
        console.print(f"[green]✓ '{book.title}' is now {_status_label(book.status)}[/green]")
    finally:
        tracker.close()


@app.command()
@handle_tracker_errors
def progress(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
    page: int = typer.Option(..., "--page", "-p", help="Current page"),
):
    """
    Record the page you are on.

    Example:
        booq progress 1712345678901 ~/booq --page 120
    """
    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.update_progress(book_id, page)
        console.print(
            f"[green]✓ '{book.title}': page {book.current_page}/{book.pages} "
            f"({book.progress_percent}%)[/green]"
        )
    finally:
        tracker.close()


@app.command()
@handle_tracker_errors
def rate(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
    rating: float = typer.Option(..., "--rating", "-r", help="Rating (0-5 stars, 0 clears)")
):
    """
    Rate a book (0-5 stars in half points).

    Example:
        booq rate 1712345678901 ~/booq --rating 4.5
    """
    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.set_rating(book_id, rating)
        if book.rating:
            console.print(f"[green]✓ Rated '{book.title}': {book.rating:g} stars[/green]")
        else:
            console.print(f"[green]✓ Cleared rating of '{book.title}'[/green]")
    finally:
        tracker.close()


@app.command()
@handle_tracker_errors
def favorite(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """
    Toggle a book's favorite mark.

    Example:
        booq favorite 1712345678901 ~/booq
    """
    from .exceptions import BookNotFoundError

    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.toggle_favorite(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        action = "Added to" if book.is_favorite else "Removed from"
        console.print(f"[green]✓ {action} favorites: '{book.title}'[/green]")
    finally:
        tracker.close()


@app.command()
@handle_tracker_errors
def delete(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a book from the library."""
    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.get(book_id)
        if book is None:
            console.print(f"[yellow]Book {book_id} not found[/yellow]")
            return
        if not yes and not Confirm.ask(f"Delete '{book.title}'?"):
            console.print("[red]Operation cancelled[/red]")
            return
        tracker.books.delete(book_id)
        console.print(f"[green]✓ Deleted '{book.title}'[/green]")
    finally:
        tracker.close()


# ============================================================================
# Custom Shelf Commands
# ============================================================================

@shelf_app.command(name="add")
@handle_tracker_errors
def shelf_add(
    library_path: Path = typer.Argument(..., help="Path to library"),
    name: str = typer.Argument(..., help="Shelf name"),
):
    """
    Create a custom shelf.

    Example:
        booq shelf add ~/booq "Summer 2024"
    """
    tracker = _open_tracker(library_path)
    try:
        shelf = tracker.shelves.add_shelf(name)
        if shelf is None:
            console.print("[red]Error: Shelf name cannot be empty[/red]")
            raise typer.Exit(code=1)
        console.print(f"[green]✓ Created shelf '{shelf.name}' (ID {shelf.id})[/green]")
    finally:
        tracker.close()


@shelf_app.command(name="rename")
@handle_tracker_errors
def shelf_rename(
    shelf_id: str = typer.Argument(..., help="Shelf ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
    name: str = typer.Argument(..., help="New shelf name"),
):
    """Rename a custom shelf."""
    tracker = _open_tracker(library_path)
    try:
        shelf = tracker.shelves.rename_shelf(shelf_id, name)
        if shelf is None:
            console.print(f"[red]Error: Shelf {shelf_id} not found or name is empty[/red]")
            raise typer.Exit(code=1)
        console.print(f"[green]✓ Renamed shelf to '{shelf.name}'[/green]")
    finally:
        tracker.close()


@shelf_app.command(name="delete")
@handle_tracker_errors
def shelf_delete(
    shelf_id: str = typer.Argument(..., help="Shelf ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """Delete a custom shelf and remove it from every book."""
    tracker = _open_tracker(library_path)
    try:
        if tracker.shelves.delete_shelf(shelf_id):
            console.print(f"[green]✓ Deleted shelf {shelf_id}[/green]")
        else:
            console.print(f"[yellow]Shelf {shelf_id} not found[/yellow]")
    finally:
        tracker.close()


@shelf_app.command(name="list")
@handle_tracker_errors
def shelf_list(
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """List custom shelves with their book counts."""
    tracker = _open_tracker(library_path)
    try:
        shelves = tracker.shelves.list()
        if not shelves:
            console.print("[yellow]No custom shelves[/yellow]")
            return

        books = tracker.books.list()
        table = Table(title="Custom Shelves")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Books", justify="right")
        for shelf in shelves:
            count = sum(1 for b in books if shelf.id in b.custom_shelf_ids)
            table.add_row(shelf.id, shelf.name, str(count))
        console.print(table)
    finally:
        tracker.close()


# ============================================================================
# Dashboard Layout Commands
# ============================================================================

@layout_app.command(name="show")
@handle_tracker_errors
def layout_show(
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """Show the dashboard section order."""
    tracker = _open_tracker(library_path)
    try:
        for position, key in enumerate(tracker.layout.get_order(), 1):
            console.print(f"  {position}. {key}")
    finally:
        tracker.close()


@layout_app.command(name="move")
@handle_tracker_errors
def layout_move(
    section: str = typer.Argument(..., help="Section to move"),
    library_path: Path = typer.Argument(..., help="Path to library"),
    target: str = typer.Option(..., "--to", help="Section whose position it takes"),
):
    """
    Move a dashboard section to another section's position.

    Example:
        booq layout move my-library ~/booq --to reading-status
    """
    tracker = _open_tracker(library_path)
    try:
        order = tracker.layout.reorder(section, target)
        console.print(f"[green]✓ Section order: {', '.join(order)}[/green]")
    finally:
        tracker.close()


# ============================================================================
# Statistics, Profile and Activity
# ============================================================================

@app.command()
@handle_tracker_errors
def stats(
    library_path: Path = typer.Argument(..., help="Path to library"),
    ytd: bool = typer.Option(False, "--ytd", help="Only count this year's reading"),
):
    """
    Show reading statistics.

    Examples:
        booq stats ~/booq
        booq stats ~/booq --ytd
    """
    from .services import StatsFilter

    tracker = _open_tracker(library_path)
    try:
        result = tracker.stats(StatsFilter.YEAR_TO_DATE if ytd else StatsFilter.ALL_TIME)

        title = "Reading Statistics (this year)" if ytd else "Reading Statistics"
        table = Table(title=title)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green", justify="right")

        table.add_row("Total Books", str(result.total_books))
        table.add_row("Books Read", str(result.read_count))
        table.add_row("Pages Read", str(result.pages_read))
        table.add_row("Currently Reading", str(result.in_progress_count))
        table.add_row("Want to Read", str(result.tbr_count))
        table.add_row("Did Not Finish", str(result.dnf_count))
        table.add_row(
            "Average Rating",
            f"{result.average_rating}" if result.average_rating is not None else "N/A",
        )
        console.print(table)

        console.print("\n[bold]By status (all time):[/bold]")
        for book_status, count in result.status_distribution.items():
            console.print(f"  {_status_label(book_status)}: {count}")
    finally:
        tracker.close()


@profile_app.command(name="show")
@handle_tracker_errors
def profile_show(
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """Show your reader profile and favorite books."""
    tracker = _open_tracker(library_path)
    try:
        profile = tracker.profile.get()
        console.print(f"\n[bold cyan]{profile.username}[/bold cyan]")
        if profile.pronouns:
            console.print(f"[dim]{profile.pronouns}[/dim]")
        if profile.bio:
            console.print(profile.bio)
        if profile.birth_year:
            console.print(f"Born: {profile.birth_year}")

        favorites = tracker.books.favorites()
        console.print(f"\n[bold]Favorites ({len(favorites)}):[/bold]")
        for book in favorites:
            console.print(f"  ♥ {book.title} [dim]by {book.author}[/dim]")
    finally:
        tracker.close()


@profile_app.command(name="set")
@handle_tracker_errors
def profile_set(
    library_path: Path = typer.Argument(..., help="Path to library"),
    username: Optional[str] = typer.Option(None, "--username", help="Display name"),
    bio: Optional[str] = typer.Option(None, "--bio", help="Short bio"),
    image_url: Optional[str] = typer.Option(None, "--image-url", help="Profile image URL"),
    pronouns: Optional[str] = typer.Option(None, "--pronouns", help="Pronouns"),
    birth_year: Optional[int] = typer.Option(None, "--birth-year", help="Birth year"),
):
    """Edit your reader profile."""
    changes = {
        "username": username,
        "bio": bio,
        "profile_image_url": image_url,
        "pronouns": pronouns,
        "birth_year": birth_year,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        return

    tracker = _open_tracker(library_path)
    try:
        profile = tracker.profile.update(**changes)
        console.print(f"[green]✓ Profile updated for {profile.username}[/green]")
    finally:
        tracker.close()


@app.command()
@handle_tracker_errors
def activity(
    library_path: Path = typer.Argument(..., help="Path to library"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries"),
):
    """Show recent activity, newest first."""
    tracker = _open_tracker(library_path)
    try:
        items = tracker.activity.list(limit=limit)
        if not items:
            console.print("[yellow]No activity yet[/yellow]")
            return

        table = Table(title="Recent Activity")
        table.add_column("When", style="dim")
        table.add_column("What", style="cyan")
        table.add_column("Book", style="green")
        table.add_column("Details")
        for item in items:
            table.add_row(
                item.timestamp[:16].replace("T", " "),
                item.type.value.replace("_", " "),
                item.book_title or "",
                item.details or "",
            )
        console.print(table)
    finally:
        tracker.close()


# ============================================================================
# Lookup and AI Commands
# ============================================================================

@app.command()
@handle_tracker_errors
def search(
    query: str = typer.Argument(..., help="Title, author or keywords"),
    library_path: Optional[Path] = typer.Argument(None, help="Library to add a result to"),
    add_index: Optional[int] = typer.Option(None, "--add", help="Add result number N to the library"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of results"),
):
    """
    Search Google Books.

    Examples:
        booq search "the left hand of darkness"
        booq search "piranesi" ~/booq --add 1
    """
    from .config import load_config
    from .lookup import GoogleBooksSearch

    config = load_config()
    searcher = GoogleBooksSearch(api_key=config.metadata.resolved_api_key())
    result = asyncio.run(searcher.search(query, max_results=limit or config.metadata.max_results))

    if result.error:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(code=1)
    if not result.books:
        console.print(f"[yellow]{result.message}[/yellow]")
        return

    console.print(_drafts_table(result.books, f"Google Books: {query}"))
    if add_index is not None:
        _add_draft(result.books, add_index, library_path)


async def _run_with_provider(coro_fn):
    """Run ``coro_fn(provider)`` with the configured provider open (or None)."""
    from .config import load_config
    from .ai.llm_providers import create_provider

    provider = create_provider(load_config().llm)
    if provider is None:
        return await coro_fn(None)
    async with provider:
        return await coro_fn(provider)


@app.command(name="ai-search")
@handle_tracker_errors
def ai_search(
    query: str = typer.Argument(..., help="Describe the book you are looking for"),
    library_path: Optional[Path] = typer.Argument(None, help="Library to add a result to"),
    add_index: Optional[int] = typer.Option(None, "--add", help="Add result number N to the library"),
):
    """
    Look up book details with the AI provider.

    Examples:
        booq ai-search "that novel about a library in a lunar colony"
        booq ai-search "dune" ~/booq --add 1
    """
    from .ai import AIBookSearch

    async def run(provider):
        return await AIBookSearch(provider).lookup(query)

    result = asyncio.run(_run_with_provider(run))

    if result.error:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(code=1)
    if not result.books:
        console.print(f"[yellow]{result.message}[/yellow]")
        return

    console.print(_drafts_table(result.books, f"AI results: {query}"))
    for index, draft in enumerate(result.books, 1):
        if draft.get("description"):
            console.print(f"[cyan]{index}.[/cyan] [dim]{draft['description']}[/dim]")
    if add_index is not None:
        _add_draft(result.books, add_index, library_path)


@app.command()
@handle_tracker_errors
def spark(
    book_id: str = typer.Argument(..., help="Book ID"),
    library_path: Path = typer.Argument(..., help="Path to library"),
):
    """Get a discussion question about a book."""
    from .ai import generate_book_spark
    from .exceptions import BookNotFoundError

    tracker = _open_tracker(library_path)
    try:
        book = tracker.books.get(book_id)
    finally:
        tracker.close()
    if book is None:
        raise BookNotFoundError(book_id)

    async def run(provider):
        return await generate_book_spark(provider, book.title, book.author)

    question = asyncio.run(_run_with_provider(run))
    console.print(f"\n[bold]✨ {book.title}[/bold]\n{question}\n")


@app.command()
@handle_tracker_errors
def chat(
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Ask one question and exit"),
):
    """
    Chat with Q Bot about what to read next.

    Without --message an interactive session starts; type 'exit' to leave.

    Examples:
        booq chat
        booq chat -m "I loved The Name of the Wind, what next?"
    """
    from .ai import RecommendationChat
    from .exceptions import ConfigurationError

    def on_chunk(text: str):
        console.print(text, end="", markup=False, highlight=False)

    def on_done():
        console.print()

    failures = []

    def on_error(error_message: str):
        failures.append(error_message)
        console.print(f"\n[red]{error_message}[/red]")

    async def run(provider):
        bridge = RecommendationChat(provider)
        try:
            session = bridge.get_or_create_session()
        except ConfigurationError:
            session = None

        if message is not None:
            console.print("[bold green]Q Bot:[/bold green] ", end="")
            await bridge.send_message(session, message, on_chunk, on_done, on_error)
            return

        if session is None:
            await bridge.send_message(None, "", on_chunk, on_done, on_error)
            return

        console.print("[bold green]Q Bot:[/bold green] Hi! Tell me what you like to read and I'll suggest something.")
        loop = asyncio.get_running_loop()
        while True:
            try:
                text = await loop.run_in_executor(None, console.input, "[bold]You:[/bold] ")
            except EOFError:
                break
            text = text.strip()
            if text.lower() in ("exit", "quit"):
                break
            if not text:
                continue
            console.print("[bold green]Q Bot:[/bold green] ", end="")
            await bridge.send_message(session, text, on_chunk, on_done, on_error)

    asyncio.run(_run_with_provider(run))
    if failures and (message is not None or failures[0] == NOT_CONFIGURED_MESSAGE):
        raise typer.Exit(code=1)


# ============================================================================
# Configuration and Server
# ============================================================================

@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    init: bool = typer.Option(False, "--init", help="Initialize config file with defaults"),
    # LLM settings
    set_provider: Optional[str] = typer.Option(None, "--llm-provider", help="Set LLM provider (gemini, ollama)"),
    set_model: Optional[str] = typer.Option(None, "--llm-model", help="Set model name"),
    set_llm_host: Optional[str] = typer.Option(None, "--llm-host", help="Set Ollama host"),
    set_llm_port: Optional[int] = typer.Option(None, "--llm-port", help="Set Ollama port"),
    set_api_key: Optional[str] = typer.Option(None, "--llm-api-key", help="Set LLM API key"),
    set_temperature: Optional[float] = typer.Option(None, "--llm-temperature", help="Set temperature (0.0-1.0)"),
    # Metadata search settings
    set_books_key: Optional[str] = typer.Option(None, "--google-books-api-key", help="Set Google Books API key"),
    set_max_results: Optional[int] = typer.Option(None, "--max-results", help="Set Google Books result count"),
    # Server settings
    set_server_host: Optional[str] = typer.Option(None, "--server-host", help="Set web server host"),
    set_server_port: Optional[int] = typer.Option(None, "--server-port", help="Set web server port"),
    set_auto_open: Optional[bool] = typer.Option(None, "--server-auto-open/--no-server-auto-open", help="Auto-open browser on server start"),
    # CLI settings
    set_cli_verbose: Optional[bool] = typer.Option(None, "--cli-verbose/--no-cli-verbose", help="Always run commands in verbose mode"),
    set_page_size: Optional[int] = typer.Option(None, "--page-size", help="Set default number of books shown by list"),
    # Library settings
    set_library_path: Optional[str] = typer.Option(None, "--library-path", help="Set default library path"),
):
    """
    View or edit booq configuration.

    Configuration is stored at ~/.config/booq/config.json (or ~/.booq/config.json).
    GEMINI_API_KEY (or API_KEY) and GOOGLE_BOOKS_API_KEY override the stored keys.

    Examples:
        booq config --show
        booq config --llm-api-key <key>
        booq config --llm-provider ollama --llm-model llama3.2
    """
    from .config import (
        load_config, ensure_config_exists, update_config, get_config_path, Capabilities,
    )

    if init:
        config_path = ensure_config_exists()
        console.print(f"[green]Configuration initialized at {config_path}[/green]")
        return

    has_settings = any(v is not None for v in [
        set_provider, set_model, set_llm_host, set_llm_port, set_api_key, set_temperature,
        set_books_key, set_max_results, set_server_host, set_server_port, set_auto_open,
        set_cli_verbose, set_page_size, set_library_path,
    ])

    if show or not has_settings:
        cfg = load_config()
        config_path = get_config_path()

        console.print("\n[bold]booq Configuration[/bold]")
        console.print(f"[dim]Location: {config_path}[/dim]\n")

        console.print("[bold cyan]Library Settings:[/bold cyan]")
        console.print(f"  Default Path: {cfg.library.default_path or '[dim]not set[/dim]'}")

        console.print("\n[bold cyan]LLM Settings:[/bold cyan]")
        console.print(f"  Provider:    {cfg.llm.provider}")
        console.print(f"  Model:       {cfg.llm.model}")
        if cfg.llm.provider == "ollama":
            console.print(f"  Host:        {cfg.llm.host}")
            console.print(f"  Port:        {cfg.llm.port}")
        console.print(f"  Temperature: {cfg.llm.temperature}")
        api_key = cfg.llm.resolved_api_key()
        if api_key:
            console.print(f"  API Key:     {api_key[:4]}...{api_key[-4:]}")
        else:
            console.print("  API Key:     [dim]not set[/dim]")

        console.print("\n[bold cyan]Google Books:[/bold cyan]")
        console.print(f"  API Key:     {'set' if cfg.metadata.resolved_api_key() else '[dim]not set (optional)[/dim]'}")
        console.print(f"  Max Results: {cfg.metadata.max_results}")

        console.print("\n[bold cyan]Server Settings:[/bold cyan]")
        console.print(f"  Host:        {cfg.server.host}")
        console.print(f"  Port:        {cfg.server.port}")
        console.print(f"  Auto-open:   {cfg.server.auto_open_browser}")

        console.print("\n[bold cyan]CLI Settings:[/bold cyan]")
        console.print(f"  Verbose:     {cfg.cli.verbose}")
        console.print(f"  Page Size:   {cfg.cli.page_size}")

        capabilities = Capabilities.from_config(cfg)
        console.print("\n[bold cyan]Features:[/bold cyan]")
        for feature, enabled in capabilities.to_dict().items():
            mark = "[green]on[/green]" if enabled else "[dim]off[/dim]"
            console.print(f"  {feature.replace('_', ' ').title():<16} {mark}")
        console.print()
        return

    console.print("[blue]Updating configuration...[/blue]")
    update_config(
        llm_provider=set_provider,
        llm_model=set_model,
        llm_host=set_llm_host,
        llm_port=set_llm_port,
        llm_api_key=set_api_key,
        llm_temperature=set_temperature,
        google_books_api_key=set_books_key,
        metadata_max_results=set_max_results,
        server_host=set_server_host,
        server_port=set_server_port,
        server_auto_open=set_auto_open,
        cli_verbose=set_cli_verbose,
        cli_page_size=set_page_size,
        library_default_path=set_library_path,
    )
    console.print("[green]✓ Configuration updated![/green]")
    console.print("[dim]Use 'booq config --show' to view current settings[/dim]")


@app.command()
def serve(
    library_path: Optional[Path] = typer.Argument(None, help="Path to library (defaults from config)"),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to (defaults from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to (defaults from config)"),
    no_open: bool = typer.Option(False, "--no-open", help="Don't auto-open browser")
):
    """
    Start the booq REST API server.

    Examples:
        booq serve ~/booq
        booq serve --port 8080
    """
    from .config import load_config
    import webbrowser
    import uvicorn

    cfg = load_config()

    if library_path is None:
        if cfg.library.default_path:
            library_path = Path(cfg.library.default_path).expanduser()
        else:
            console.print("[red]Error: No library path specified[/red]")
            console.print("[yellow]Either provide a path or set default with:[/yellow]")
            console.print("[yellow]  booq config --library-path ~/booq[/yellow]")
            raise typer.Exit(code=1)

    if not library_path.exists():
        console.print(f"[red]Error: Library not found: {library_path}[/red]")
        raise typer.Exit(code=1)

    server_host = host if host is not None else cfg.server.host
    server_port = port if port is not None else cfg.server.port

    try:
        from .server import create_app

        console.print("[blue]Starting booq server...[/blue]")
        console.print(f"[blue]Library: {library_path}[/blue]")
        console.print(f"[green]Server running at http://{server_host}:{server_port}[/green]")
        console.print("[dim]Press Ctrl+C to stop[/dim]")

        if cfg.server.auto_open_browser and not no_open:
            browser_host = "localhost" if server_host == "0.0.0.0" else server_host
            webbrowser.open(f"http://{browser_host}:{server_port}/docs")

        uvicorn.run(
            create_app(library_path),
            host=server_host,
            port=server_port,
            log_level="info"
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


if __name__ == "__main__":
    app()
