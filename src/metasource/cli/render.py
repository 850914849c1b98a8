# ABOUTME: Rich rendering helpers shared by the metasource CLI commands.
# ABOUTME: Formats books, authors, and aggregation outcomes as tables and status lines.

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from metasource.core.options import AggregatedResult, AggregationOutcome
from metasource.metadata.types import Author, Book

_OUTCOME_MESSAGES = {
    AggregationOutcome.NOT_FOUND: "[yellow]No results found.[/yellow]",
    AggregationOutcome.NO_PROVIDERS: "[red]No enabled provider supports this request.[/red]",
    AggregationOutcome.ALL_FAILED: "[red]All providers failed.[/red]",
    AggregationOutcome.QUALITY_BELOW_THRESHOLD: (
        "[yellow]No result met the minimum quality score.[/yellow]"
    ),
}


def print_outcome(console: Console, result: AggregatedResult[Any]) -> None:
    """Print provider failures, then a summary line for the outcome."""
    for name, message in result.failed_providers.items():
        console.print(f"[yellow]{escape(name)}:[/yellow] {escape(message)}")
    if result.succeeded:
        source = (
            ", ".join(result.merged_from_providers) if result.is_merged else result.provider_name
        )
        console.print(
            f"\n[dim]Source: {escape(source or 'unknown')} (quality {result.quality_score})[/dim]"
        )
    else:
        console.print(_OUTCOME_MESSAGES[result.outcome])


def _add_field(table: Table, label: str, value: str | None) -> None:
    """Add a row for provider-supplied text, which may contain markup brackets."""
    if value:
        table.add_row(label, escape(value))


def book_table(book: Book) -> Table:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    _add_field(table, "Title", book.title or "unknown")
    _add_field(table, "Author", book.author_name or "unknown")
    _add_field(table, "ID", book.foreign_book_id)
    if book.release_date:
        table.add_row("Released", book.release_date.isoformat())

    edition = book.selected_edition()
    if edition is not None:
        _add_field(table, "ISBN", edition.isbn13)
        _add_field(table, "ASIN", edition.asin)
        _add_field(table, "Publisher", edition.publisher)
        if edition.page_count:
            table.add_row("Pages", str(edition.page_count))
        _add_field(table, "Language", edition.language)
        if edition.images:
            _add_field(table, "Cover", edition.images[0].url)
        _add_field(table, "Description", edition.overview)

    editions = book.editions.get() or []
    if len(editions) > 1:
        table.add_row("Editions", str(len(editions)))
    series = book.series_links.get() or []
    _add_field(table, "Series", ", ".join(s.series_title for s in series))
    _add_field(table, "Genres", ", ".join(book.genres))
    return table


def author_table(author: Author) -> Table:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    _add_field(table, "Name", author.display_name or "unknown")
    _add_field(table, "ID", author.foreign_author_id)
    meta = author.metadata.get()
    if meta is not None:
        if meta.born:
            table.add_row("Born", meta.born.isoformat())
        if meta.died:
            table.add_row("Died", meta.died.isoformat())
        _add_field(table, "Hometown", meta.hometown)
        _add_field(table, "Aliases", ", ".join(meta.aliases))
        _add_field(table, "Genres", ", ".join(meta.genres))
        _add_field(table, "Bio", meta.overview)
    return table


def book_list_table(books: list[Book]) -> Table:
    table = Table()
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Year", width=5)
    table.add_column("ID", style="dim")

    for index, book in enumerate(books, start=1):
        table.add_row(
            str(index),
            escape(book.title) if book.title else "[dim]untitled[/dim]",
            escape(book.author_name) if book.author_name else "[dim]unknown[/dim]",
            str(book.release_date.year) if book.release_date else "?",
            escape(book.foreign_book_id or ""),
        )
    return table


def author_list_table(authors: list[Author]) -> Table:
    table = Table()
    table.add_column("#", style="dim", width=3)
    table.add_column("Name", style="bold")
    table.add_column("Born", width=10)
    table.add_column("ID", style="dim")

    for index, author in enumerate(authors, start=1):
        meta = author.metadata.get()
        born = meta.born.isoformat() if meta is not None and meta.born else "?"
        table.add_row(
            str(index),
            escape(author.display_name) if author.display_name else "[dim]unknown[/dim]",
            born,
            escape(author.foreign_author_id or ""),
        )
    return table
