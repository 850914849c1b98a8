# ABOUTME: Shared Click options for metasource CLI commands.
# ABOUTME: Provides a reusable decorator for the aggregation flags and builds AggregationOptions.

from collections.abc import Callable
from typing import Any

import click

from metasource.core.options import AggregationOptions, AggregationStrategy
from metasource.errors import InvalidArgumentError
from metasource.metadata.scoring import DEFAULT_MINIMUM_QUALITY_SCORE

_STRATEGY_CHOICES = [s.value for s in AggregationStrategy]


def aggregation_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach --strategy, --min-quality, --max-providers, --no-stop, and --timeout-ms."""
    decorators = [
        click.option(
            "--strategy",
            type=click.Choice(_STRATEGY_CHOICES),
            default=AggregationStrategy.FIRST_ACCEPTABLE.value,
            show_default=True,
            help="How answers from several providers become one.",
        ),
        click.option(
            "--min-quality",
            type=int,
            default=DEFAULT_MINIMUM_QUALITY_SCORE,
            show_default=True,
            help="Minimum quality score (0-100) for an answer to be acceptable.",
        ),
        click.option(
            "--max-providers",
            type=int,
            default=3,
            show_default=True,
            help="Maximum number of providers to query.",
        ),
        click.option(
            "--no-stop",
            is_flag=True,
            default=False,
            help="Keep querying after the first acceptable answer (first-acceptable only).",
        ),
        click.option(
            "--timeout-ms",
            type=int,
            default=10000,
            show_default=True,
            help="Per-provider timeout in milliseconds.",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def build_options(
    strategy: str,
    min_quality: int,
    max_providers: int,
    no_stop: bool,
    timeout_ms: int,
) -> AggregationOptions:
    """Build AggregationOptions from CLI flags, reporting bad values as usage errors."""
    try:
        return AggregationOptions(
            strategy=AggregationStrategy(strategy),
            minimum_quality_score=min_quality,
            max_providers=max_providers,
            stop_on_first_success=not no_stop,
            provider_timeout_ms=timeout_ms,
        )
    except InvalidArgumentError as exc:
        raise click.BadParameter(str(exc)) from exc
