import subprocess
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from rich.console import Console

from config import configure_logging, settings
from database import BookStore, StoreError
from demo import run_demo
from library import Library, LibraryError
from utils.ui_helpers import print_book_result, print_error, print_list_result, set_output_mode

APP_NAME = "Library CLI"

console = Console()

# Global options shared by every command
_state = {"db_file": None}

app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db_file: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database file (default: LIBRARY_DB_FILE or library.db)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level, e.g. DEBUG"),
):
    """Global options for the CLI (output mode, database file)."""
    configure_logging(log_level)
    if output:
        set_output_mode(output)
    _state["db_file"] = db_file


def _db_file() -> str:
    return _state["db_file"] or settings.database_file


@contextmanager
def open_library() -> Iterator[Library]:
    """Open the store for one command and turn rule violations into exit code 1."""
    store = BookStore(_db_file())
    try:
        yield Library(store.open())
    except (LibraryError, StoreError) as e:
        print_error(str(e))
        raise typer.Exit(code=1)
    finally:
        store.close()


@app.command("demo")
def cli_demo():
    """Run the scripted walkthrough (seed, query, update, guard rules, delete)."""
    if not run_demo(BookStore(_db_file()), console):
        raise typer.Exit(code=1)


@app.command("serve")
def cli_serve(
    host: str = typer.Option(settings.api_host, help="Bind address"),
    port: int = typer.Option(settings.api_port, help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Start the REST API with uvicorn."""
    print(f"Starting API on http://{host}:{port} ...")
    cmd = [sys.executable, "-m", "uvicorn", "api:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    subprocess.run(cmd)


@app.command("seed")
def cli_seed():
    """Replace all books with the sample set."""
    with open_library() as lib:
        books = lib.seed_sample()
    print(f"Inserted {len(books)} books")


@app.command("list")
def cli_list(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only this category"),
    after: Optional[int] = typer.Option(None, "--after", "-a", help="Only books published after this year"),
):
    """List books, optionally by category or publication year."""
    with open_library() as lib:
        if category is None:
            books = lib.list_books() if after is None else lib.list_published_after(after)
        else:
            books = lib.list_by_category(category)
            if after is not None:
                books = [b for b in books if b.published_year > after]
    print_list_result(books)


@app.command("show")
def cli_show(book_id: str):
    """Show one book by id."""
    with open_library() as lib:
        book = lib.get_book(book_id)
    print_book_result(book, title="Book Found")


@app.command("add")
def cli_add(
    title: str = typer.Option(..., "--title", "-t"),
    author: str = typer.Option(..., "--author", "-a"),
    category: str = typer.Option(..., "--category", "-c"),
    year: int = typer.Option(..., "--year", "-y"),
    copies: Optional[int] = typer.Option(None, "--copies", "-n", help="Defaults to 1"),
):
    """Add a book."""
    fields = {"title": title, "author": author, "category": category, "publishedYear": year}
    if copies is not None:
        fields["availableCopies"] = copies
    with open_library() as lib:
        book = lib.create_book(fields)
    print(f"Successfully added: {book.title} by {book.author} ({book.id})")


@app.command("copies")
def cli_copies(
    book_id: str,
    change: int = typer.Option(..., "--change", "-d", help="Copies to add (negative to remove)"),
):
    """Increase or decrease the available copies of a book."""
    with open_library() as lib:
        before = lib.get_book(book_id)
        book = lib.adjust_copies(book_id, change)
    print(f"Updated \"{book.title}\": {before.available_copies} → {book.available_copies} copies")


@app.command("category")
def cli_category(book_id: str, new_category: str):
    """Move a book to another category."""
    with open_library() as lib:
        before = lib.get_book(book_id)
        book = lib.change_category(book_id, new_category)
    print(f"Updated \"{book.title}\": {before.category} → {book.category}")


@app.command("delete")
def cli_delete(book_id: str):
    """Delete a book that has no copies left."""
    with open_library() as lib:
        book = lib.delete_if_empty(book_id)
    print(f"Deleted \"{book.title}\" (0 copies)")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
