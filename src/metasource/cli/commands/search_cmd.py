# ABOUTME: The `metasource search` and `metasource search-authors` commands.
# ABOUTME: Searches every capable provider and prints the (possibly deduplicated) result list.

import click
from rich.console import Console

from metasource.cli.context import get_registry, run_request
from metasource.cli.options import aggregation_options, build_options
from metasource.cli.render import author_list_table, book_list_table, print_outcome
from metasource.core.aggregator import MetadataAggregator

console = Console()


@click.command("search")
@click.argument("title")
@click.option("-a", "--author", default=None, help="Restrict the search to an author.")
@aggregation_options
@click.pass_context
def search(
    ctx: click.Context,
    title: str,
    author: str | None,
    strategy: str,
    min_quality: int,
    max_providers: int,
    no_stop: bool,
    timeout_ms: int,
) -> None:
    """Search providers for books by title and optional author."""
    options = build_options(strategy, min_quality, max_providers, no_stop, timeout_ms)
    aggregator = MetadataAggregator(get_registry(ctx))

    result = run_request(ctx, aggregator.search_books(title, author, options))

    if result.succeeded and result.result:
        console.print(book_list_table(result.result))
        console.print(f"\n[dim]{len(result.result)} result(s)[/dim]")
    print_outcome(console, result)
    if not result.succeeded:
        raise SystemExit(1)


@click.command("search-authors")
@click.argument("name")
@aggregation_options
@click.pass_context
def search_authors(
    ctx: click.Context,
    name: str,
    strategy: str,
    min_quality: int,
    max_providers: int,
    no_stop: bool,
    timeout_ms: int,
) -> None:
    """Search providers for authors by name."""
    options = build_options(strategy, min_quality, max_providers, no_stop, timeout_ms)
    aggregator = MetadataAggregator(get_registry(ctx))

    result = run_request(ctx, aggregator.search_authors(name, options))

    if result.succeeded and result.result:
        console.print(author_list_table(result.result))
        console.print(f"\n[dim]{len(result.result)} result(s)[/dim]")
    print_outcome(console, result)
    if not result.succeeded:
        raise SystemExit(1)
