"""Command-line interface for bookreviews.

Built with Typer for commands and Rich for beautiful output.
"""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .auth import EnvIdentityGate, StaticIdentityGate
from .books import BookManager
from .catalog import CatalogManager, SortDirection, SortSpec
from .config import get_config
from .db import get_db
from .db.schemas import Genre
from .display import format_rating
from .errors import BookReviewsError, ConflictError, InvalidInputError
from .profiles import ProfileManager
from .ratings import RatingAggregator
from .reviews import ReviewManager

# Create the main app
app = typer.Typer(
    name="bookreviews",
    help="Catalog books, review them, and browse the catalog.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
book_app = typer.Typer(help="Add, edit and delete your books.")
app.add_typer(book_app, name="book")

review_app = typer.Typer(help="Write, amend and withdraw reviews.")
app.add_typer(review_app, name="review")

profile_app = typer.Typer(help="Manage your display name and activity.")
app.add_typer(profile_app, name="profile")

ratings_app = typer.Typer(help="Audit and repair rating aggregates.")
app.add_typer(ratings_app, name="ratings")

# Rich console for pretty output
console = Console()
err_console = Console(stderr=True)

AS_USER_HELP = "Act as this user (defaults to BOOKREVIEWS_USER)"


# ============================================================================
# Helper Functions
# ============================================================================


def configure_logging(level: str) -> None:
    """Route library logging through Rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def fail(error: BookReviewsError) -> None:
    """Report a domain error and exit with status 1."""
    if isinstance(error, InvalidInputError) and error.errors:
        print_error("Invalid input")
        for item in error.errors:
            console.print(f"  - {item['field'] or 'value'}: {item['message']}")
    else:
        print_error(str(error))
    raise typer.Exit(1)


def current_user(as_user: Optional[str]) -> Optional[str]:
    """Resolve the acting identity from --as or the environment."""
    if as_user:
        return StaticIdentityGate(as_user).current_identity()
    return EnvIdentityGate().current_identity()


def format_book_table(books: list, title: str = "Books") -> Table:
    """Create a rich table for displaying books."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Genre", style="yellow")
    table.add_column("Year", justify="right")
    table.add_column("Rating", justify="center")
    table.add_column("Reviews", justify="right")
    table.add_column("ID", style="dim", no_wrap=True)

    for book in books:
        table.add_row(
            book.title,
            book.author,
            book.genre or "-",
            str(book.publication_year) if book.publication_year else "-",
            format_rating(book.average_rating, book.review_count),
            str(book.review_count),
            book.id,
        )

    return table


# ============================================================================
# Global Options
# ============================================================================


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Catalog books, review them, and browse the catalog."""
    config = get_config()
    configure_logging("DEBUG" if verbose else config.log_level)
    for problem in config.validate():
        print_warning(problem)


# ============================================================================
# Catalog Command
# ============================================================================


@app.command("catalog")
def catalog(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Match title or author"),
    genre: Optional[Genre] = typer.Option(None, "--genre", "-g", help="Filter by genre"),
    sort: str = typer.Option(
        "created_at",
        "--sort",
        help="created_at, average_rating, title or publication_year; prefix '-' for descending",
    ),
    desc: bool = typer.Option(False, "--desc", help="Sort descending"),
    page: int = typer.Option(1, "--page", "-p", help="Page number (1-based)"),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Books per page"),
) -> None:
    """Browse the catalog with search, genre filter, sort and pagination."""
    try:
        sort_spec = SortSpec.parse(sort)
    except ValueError:
        print_error(f"Unknown sort key: {sort}")
        raise typer.Exit(1)
    if desc:
        sort_spec = SortSpec(field=sort_spec.field, direction=SortDirection.DESC)

    criteria = {"search_term": search, "genre": genre, "sort": sort_spec, "page": page}
    if page_size is not None:
        criteria["page_size"] = page_size

    try:
        result = CatalogManager(get_db()).list(criteria)
    except BookReviewsError as e:
        fail(e)

    if result.error:
        print_error(f"Could not load the catalog: {result.error}")
        raise typer.Exit(1)

    if not result.items:
        if result.total_matching:
            console.print(f"[dim]Page {result.page} is past the last page ({result.total_pages}).[/dim]")
        else:
            console.print("[dim]No books found. Be the first to add one![/dim]")
        return

    console.print(format_book_table(result.items, title="Catalog"))
    console.print(
        f"[dim]Page {result.page} of {result.total_pages} "
        f"({result.total_matching} matching books)[/dim]"
    )


# ============================================================================
# Book Commands
# ============================================================================


@book_app.command("add")
def book_add(
    title: str = typer.Option(..., "--title", "-t", prompt="Book title"),
    author: str = typer.Option(..., "--author", "-a", prompt="Author"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    genre: Optional[Genre] = typer.Option(None, "--genre", "-g", help="Genre"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Publication year"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Add a book to the catalog."""
    manager = BookManager(get_db())

    try:
        book = manager.create(
            current_user(as_user),
            {
                "title": title,
                "author": author,
                "description": description,
                "genre": genre,
                "publication_year": year,
            },
        )
    except BookReviewsError as e:
        fail(e)

    print_success(f"Added: {book.title} by {book.author}")
    print_info(f"ID: {book.id}")


@book_app.command("show")
def book_show(
    book_id: str = typer.Argument(..., help="Book ID"),
) -> None:
    """Show a book with its reviews."""
    db = get_db()
    books = BookManager(db)
    reviews = ReviewManager(db)

    try:
        book = books.get(book_id)
        book_reviews = reviews.list_for_book_with_names(book_id)
    except BookReviewsError as e:
        fail(e)

    details = [f"[bold]{book.title}[/bold] by {book.author}"]
    if book.genre or book.publication_year:
        details.append(" · ".join(str(v) for v in (book.genre, book.publication_year) if v))
    details.append(
        f"Rating: {format_rating(book.average_rating, book.review_count)} "
        f"({book.review_count} reviews)"
    )
    if book.description:
        details.append(f"\n{book.description}")
    console.print(Panel("\n".join(details), title="Book"))

    if not book_reviews:
        console.print("[dim]No reviews yet. Be the first to review this book![/dim]")
        return

    for review in book_reviews:
        header = f"{review.author_name or review.author_id}  {review.star_display}"
        console.print(f"[bold]{header}[/bold]  [dim]{review.created_at.date().isoformat()}[/dim]")
        if review.text:
            console.print(f"  {review.text}")


@book_app.command("edit")
def book_edit(
    book_id: str = typer.Argument(..., help="Book ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="New author"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    genre: Optional[Genre] = typer.Option(None, "--genre", "-g", help="New genre"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="New publication year"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Edit a book you added."""
    manager = BookManager(get_db())

    changes = {
        field: value
        for field, value in {
            "title": title,
            "author": author,
            "description": description,
            "genre": genre,
            "publication_year": year,
        }.items()
        if value is not None
    }
    if not changes:
        print_warning("Nothing to update")
        return

    try:
        book = manager.update(book_id, current_user(as_user), changes)
    except BookReviewsError as e:
        fail(e)

    print_success(f"Updated: {book.title}")


@book_app.command("delete")
def book_delete(
    book_id: str = typer.Argument(..., help="Book ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Delete a book you added, along with all of its reviews."""
    manager = BookManager(get_db())

    if not force:
        if not typer.confirm("Are you sure you want to delete this book?"):
            return

    try:
        manager.delete(book_id, current_user(as_user))
    except BookReviewsError as e:
        fail(e)

    print_success("Book deleted")


@book_app.command("mine")
def book_mine(
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """List the books you added."""
    user_id = current_user(as_user)
    if not user_id:
        print_error("Set BOOKREVIEWS_USER or pass --as to see your books")
        raise typer.Exit(1)

    books = BookManager(get_db()).list_by_owner(user_id)
    if not books:
        console.print("[dim]You haven't added any books yet.[/dim]")
        return

    console.print(format_book_table(books, title="My Books"))


# ============================================================================
# Review Commands
# ============================================================================


@review_app.command("add")
def review_add(
    book_id: str = typer.Argument(..., help="Book ID"),
    rating: int = typer.Option(..., "--rating", "-r", help="Rating 1-5"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Review text"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Review a book."""
    manager = ReviewManager(get_db())

    try:
        review = manager.submit(book_id, current_user(as_user), rating, text)
    except ConflictError:
        print_error("You already reviewed this book. Use 'review edit' instead.")
        raise typer.Exit(1)
    except BookReviewsError as e:
        fail(e)

    print_success(f"Review added: {review.star_display}")


@review_app.command("edit")
def review_edit(
    book_id: str = typer.Argument(..., help="Book ID"),
    rating: int = typer.Option(..., "--rating", "-r", help="Rating 1-5"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Review text"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Amend your review of a book."""
    manager = ReviewManager(get_db())
    user_id = current_user(as_user)

    existing = manager.find_by_author(book_id, user_id)
    if not existing:
        print_error("No review found for this book. Use 'review add' instead.")
        raise typer.Exit(1)

    try:
        review = manager.amend(existing.id, user_id, rating, text)
    except BookReviewsError as e:
        fail(e)

    print_success(f"Review updated: {review.star_display}")


@review_app.command("delete")
def review_delete(
    book_id: str = typer.Argument(..., help="Book ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Withdraw your review of a book."""
    manager = ReviewManager(get_db())
    user_id = current_user(as_user)

    existing = manager.find_by_author(book_id, user_id)
    if not existing:
        print_error("No review found for this book")
        raise typer.Exit(1)

    if not force:
        if not typer.confirm("Are you sure you want to delete your review?"):
            return

    try:
        manager.withdraw(existing.id, user_id)
    except BookReviewsError as e:
        fail(e)

    print_success("Review deleted")


@review_app.command("list")
def review_list(
    book_id: str = typer.Argument(..., help="Book ID"),
) -> None:
    """List the reviews of a book, newest first."""
    manager = ReviewManager(get_db())

    try:
        reviews = manager.list_for_book_with_names(book_id)
    except BookReviewsError as e:
        fail(e)

    if not reviews:
        console.print("[dim]No reviews yet.[/dim]")
        return

    table = Table(title="Reviews", show_header=True, header_style="bold magenta")
    table.add_column("Reviewer", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Review", max_width=60)
    table.add_column("Date", style="dim")
    for review in reviews:
        table.add_row(
            review.author_name or review.author_id,
            review.star_display,
            review.text or "-",
            review.created_at.date().isoformat(),
        )
    console.print(table)


@review_app.command("mine")
def review_mine(
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """List the reviews you wrote."""
    user_id = current_user(as_user)
    if not user_id:
        print_error("Set BOOKREVIEWS_USER or pass --as to see your reviews")
        raise typer.Exit(1)

    reviews = ReviewManager(get_db()).list_by_author(user_id)
    if not reviews:
        console.print("[dim]You haven't written any reviews yet.[/dim]")
        return

    table = Table(title="My Reviews", show_header=True, header_style="bold magenta")
    table.add_column("Book", style="cyan", max_width=40)
    table.add_column("Author", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Date", style="dim")
    for review in reviews:
        table.add_row(
            review.book_title,
            review.book_author,
            review.star_display,
            review.created_at.date().isoformat(),
        )
    console.print(table)


# ============================================================================
# Profile Commands
# ============================================================================


@profile_app.command("set")
def profile_set(
    name: str = typer.Argument(..., help="Display name"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Set your display name."""
    try:
        profile = ProfileManager(get_db()).upsert(current_user(as_user), name)
    except BookReviewsError as e:
        fail(e)

    print_success(f"Display name set to {profile.name}")


@profile_app.command("show")
def profile_show(
    user: Optional[str] = typer.Argument(None, help="User ID (defaults to you)"),
    as_user: Optional[str] = typer.Option(None, "--as", help=AS_USER_HELP),
) -> None:
    """Show a user's books and reviews."""
    user_id = user or current_user(as_user)
    if not user_id:
        print_error("Pass a user ID, set BOOKREVIEWS_USER, or use --as")
        raise typer.Exit(1)

    try:
        activity = ProfileManager(get_db()).activity(user_id)
    except BookReviewsError as e:
        fail(e)

    console.print(
        Panel(
            f"[bold]{activity.name}[/bold]\n"
            f"{activity.books_added} books added · {activity.reviews_written} reviews written",
            title="Profile",
        )
    )
    if activity.books:
        console.print(format_book_table(activity.books, title="Books"))
    for review in activity.reviews:
        console.print(f"{review.star_display}  [cyan]{review.book_title}[/cyan] by {review.book_author}")


# ============================================================================
# Ratings Commands
# ============================================================================


@ratings_app.command("check")
def ratings_check() -> None:
    """Report books whose stored rating aggregates disagree with their reviews."""
    drifts = RatingAggregator(get_db()).check_all()
    if not drifts:
        print_success("All rating aggregates are consistent")
        return

    table = Table(title="Stale Rating Aggregates", show_header=True, header_style="bold red")
    table.add_column("Title", style="cyan")
    table.add_column("Stored", justify="right")
    table.add_column("Actual", justify="right")
    for drift in drifts:
        table.add_row(
            drift.title,
            f"{drift.stored_average:.2f} ({drift.stored_count})",
            f"{drift.actual_average:.2f} ({drift.actual_count})",
        )
    console.print(table)
    raise typer.Exit(1)


@ratings_app.command("rebuild")
def ratings_rebuild() -> None:
    """Recompute every book's rating aggregates from its reviews."""
    changed = RatingAggregator(get_db()).rebuild_all()
    print_success(f"Rebuilt rating aggregates ({changed} corrected)")


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"bookreviews version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
