# ABOUTME: Wiring between the CLI and the aggregation engine.
# ABOUTME: Builds the default provider registry and runs async requests from sync commands.

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import click

from metasource.core.registry import ProviderRegistry
from metasource.metadata.http import MetasourceHttpClient
from metasource.metadata.openlibrary import OpenLibraryProvider

T = TypeVar("T")

_HTTP_CLIENT_KEY = "metasource.http_client"


def create_registry(ctx: click.Context) -> ProviderRegistry:
    """Create the default registry (Open Library) and remember its HTTP client.

    The client is closed by run_request, or when the context closes if no request ran.
    """
    http_client = MetasourceHttpClient()
    ctx.meta[_HTTP_CLIENT_KEY] = http_client
    ctx.call_on_close(lambda: _close_unused_client(ctx))
    registry = ProviderRegistry()
    registry.register(OpenLibraryProvider(http_client=http_client))
    return registry


def _close_unused_client(ctx: click.Context) -> None:
    http_client = ctx.meta.pop(_HTTP_CLIENT_KEY, None)
    if http_client is not None:
        asyncio.run(http_client.aclose())


def get_registry(ctx: click.Context) -> ProviderRegistry:
    """Registry from the context object, created on first use.

    Tests pass their own registry via CliRunner.invoke(obj=...).
    """
    root = ctx.find_root()
    if root.obj is None:
        root.obj = create_registry(root)
    return root.obj


def run_request(ctx: click.Context, request: Awaitable[T]) -> T:
    """Run one aggregation request to completion, closing the HTTP client afterwards."""

    async def main() -> T:
        try:
            return await request
        finally:
            http_client = ctx.find_root().meta.pop(_HTTP_CLIENT_KEY, None)
            if http_client is not None:
                await http_client.aclose()

    return asyncio.run(main())
