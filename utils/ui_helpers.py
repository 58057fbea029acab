import os
import json
from typing import List, Any, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_list_result(books: List[Any], empty_message: str = "No books in library.") -> None:
    """Print a list of books in the current output mode.
    - plain: 'id - Title by Author (Year) [Category] - N copies' lines
    - json: JSON array of the book dicts
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Category", style="green")
        table.add_column("Year", justify="right")
        table.add_column("Copies", justify="right")
        for b in books:
            table.add_row(b.id, b.title, b.author, b.category, str(b.published_year), str(b.available_copies))
        _console.print(table)
    else:
        for b in books:
            print(f"{b.id} - {b.title} by {b.author} ({b.published_year}) [{b.category}] - {b.available_copies} copies")


def print_book_result(book: Any, title: Optional[str] = None) -> None:
    """Print a single book in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Title:[/] {book.title}\n[bold]Author:[/] {book.author}\n"
            f"[bold]Category:[/] {book.category}\n[bold]Year:[/] {book.published_year}\n"
            f"[bold]Copies:[/] {book.available_copies}\n[dim]{book.id}[/]"
        )
        _console.print(Panel.fit(content, title=title or "📖 Book", border_style="blue"))
    else:
        if title:
            print(title)
        print(f"ID: {book.id}")
        print(f"Title: {book.title}")
        print(f"Author: {book.author}")
        print(f"Category: {book.category}")
        print(f"Published: {book.published_year}")
        print(f"Copies: {book.available_copies}")


def print_error(message: str) -> None:
    if get_output_mode() == "json":
        print(json.dumps({"success": False, "error": message}, ensure_ascii=False))
    else:
        print(f"Error: {message}")
