# ABOUTME: The `metasource providers` command listing registered metadata providers.
# ABOUTME: Shows priority order, enabled state, health, capabilities, and advertised rate limits.

import click
from rich.console import Console
from rich.table import Table

from metasource.cli.context import get_registry
from metasource.metadata.health import ProviderHealth
from metasource.metadata.provider import Capability

console = Console()

_HEALTH_STYLES = {
    ProviderHealth.HEALTHY: "green",
    ProviderHealth.UNKNOWN: "dim",
    ProviderHealth.DEGRADED: "yellow",
    ProviderHealth.UNHEALTHY: "red",
}


def _capability_names(capabilities: Capability) -> str:
    names = [c.name.lower().replace("_", "-") for c in Capability if c and c in capabilities]
    return ", ".join(names) or "none"


@click.command("providers")
@click.pass_context
def providers(ctx: click.Context) -> None:
    """List registered metadata providers in priority order."""
    registry = get_registry(ctx)
    entries = registry.get_entries()

    if not entries:
        console.print("[yellow]No providers registered.[/yellow]")
        return

    table = Table()
    table.add_column("Priority", width=8)
    table.add_column("Name", style="bold")
    table.add_column("Enabled")
    table.add_column("Health")
    table.add_column("Capabilities")
    table.add_column("Rate limit")

    for entry in entries:
        health = entry.health.health
        style = _HEALTH_STYLES[health]
        table.add_row(
            str(entry.priority),
            entry.name,
            "yes" if entry.enabled else "[dim]no[/dim]",
            f"[{style}]{health.value}[/{style}]",
            _capability_names(entry.provider.capabilities),
            entry.provider.get_rate_limit_info().describe(),
        )

    console.print(table)
