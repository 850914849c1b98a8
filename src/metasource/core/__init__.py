# ABOUTME: Core package for the provider registry and the aggregation engine.
# ABOUTME: Exports the registry, aggregator, and per-request options and results.

from metasource.core.aggregator import MetadataAggregator
from metasource.core.options import (
    AggregatedResult,
    AggregationOptions,
    AggregationOutcome,
    AggregationStrategy,
)
from metasource.core.registry import ProviderRegistry, RegistryEntry

__all__ = [
    "AggregatedResult",
    "AggregationOptions",
    "AggregationOutcome",
    "AggregationStrategy",
    "MetadataAggregator",
    "ProviderRegistry",
    "RegistryEntry",
]
