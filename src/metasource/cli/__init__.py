# ABOUTME: CLI package for metasource, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from metasource.cli.commands import lookup_cmd, providers_cmd, search_cmd


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(package_name="metasource")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """metasource - aggregate book metadata from several providers."""
    _configure_logging(verbose)


cli.add_command(providers_cmd.providers)
cli.add_command(lookup_cmd.book)
cli.add_command(lookup_cmd.author)
cli.add_command(search_cmd.search)
cli.add_command(search_cmd.search_authors)
