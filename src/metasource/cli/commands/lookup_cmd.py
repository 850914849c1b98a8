# ABOUTME: The `metasource book` and `metasource author` commands for single-record lookups.
# ABOUTME: Resolves an identifier across providers and prints the reconciled record.

import click
from rich.console import Console

from metasource.cli.context import get_registry, run_request
from metasource.cli.options import aggregation_options, build_options
from metasource.cli.render import author_table, book_table, print_outcome
from metasource.core.aggregator import MetadataAggregator

console = Console()


@click.command("book")
@click.argument("identifier")
@click.option(
    "-t",
    "--type",
    "identifier_type",
    default="isbn",
    show_default=True,
    help="Identifier type: isbn, asin, id (provider id), or a provider-specific type.",
)
@aggregation_options
@click.pass_context
def book(
    ctx: click.Context,
    identifier: str,
    identifier_type: str,
    strategy: str,
    min_quality: int,
    max_providers: int,
    no_stop: bool,
    timeout_ms: int,
) -> None:
    """Look up one book by ISBN, ASIN, or provider id."""
    options = build_options(strategy, min_quality, max_providers, no_stop, timeout_ms)
    aggregator = MetadataAggregator(get_registry(ctx))

    result = run_request(
        ctx, aggregator.get_book_metadata(identifier, identifier_type, options)
    )

    if result.succeeded and result.result is not None:
        console.print(book_table(result.result))
    print_outcome(console, result)
    if not result.succeeded:
        raise SystemExit(1)


@click.command("author")
@click.argument("identifier")
@click.option(
    "-t",
    "--type",
    "identifier_type",
    type=click.Choice(["id", "name"]),
    default="id",
    show_default=True,
    help="Look up by provider id or by name.",
)
@aggregation_options
@click.pass_context
def author(
    ctx: click.Context,
    identifier: str,
    identifier_type: str,
    strategy: str,
    min_quality: int,
    max_providers: int,
    no_stop: bool,
    timeout_ms: int,
) -> None:
    """Look up one author by provider id or name."""
    options = build_options(strategy, min_quality, max_providers, no_stop, timeout_ms)
    aggregator = MetadataAggregator(get_registry(ctx))

    result = run_request(
        ctx, aggregator.get_author_metadata(identifier, identifier_type, options)
    )

    if result.succeeded and result.result is not None:
        console.print(author_table(result.result))
    print_outcome(console, result)
    if not result.succeeded:
        raise SystemExit(1)
