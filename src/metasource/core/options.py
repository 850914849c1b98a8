# ABOUTME: Per-request aggregation options and the structured result returned to callers.
# ABOUTME: Options are immutable and validated on construction; results carry partial failure info.

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from metasource.errors import (
    AllProvidersFailedError,
    InvalidArgumentError,
    NoProvidersAvailableError,
    QualityBelowThresholdError,
)
from metasource.metadata.scoring import DEFAULT_MINIMUM_QUALITY_SCORE

T = TypeVar("T")


class AggregationStrategy(Enum):
    """How results from multiple providers become one answer."""

    FIRST_ACCEPTABLE = "first-acceptable"
    BEST_QUALITY = "best-quality"
    MERGE = "merge"
    PRIMARY_ONLY = "primary-only"


class AggregationOutcome(Enum):
    SUCCESS = "success"
    NOT_FOUND = "not-found"
    NO_PROVIDERS = "no-providers"
    ALL_FAILED = "all-failed"
    QUALITY_BELOW_THRESHOLD = "quality-below-threshold"


@dataclass(frozen=True)
class AggregationOptions:
    """Options for a single aggregation request."""

    strategy: AggregationStrategy = AggregationStrategy.FIRST_ACCEPTABLE
    minimum_quality_score: int = DEFAULT_MINIMUM_QUALITY_SCORE
    max_providers: int = 3
    stop_on_first_success: bool = True
    provider_timeout_ms: int = 10000

    def __post_init__(self) -> None:
        if not 0 <= self.minimum_quality_score <= 100:
            msg = (
                "minimum_quality_score must be between 0 and 100, "
                f"got {self.minimum_quality_score}"
            )
            raise InvalidArgumentError(msg)
        if self.max_providers < 1:
            msg = f"max_providers must be at least 1, got {self.max_providers}"
            raise InvalidArgumentError(msg)
        if self.provider_timeout_ms <= 0:
            msg = f"provider_timeout_ms must be positive, got {self.provider_timeout_ms}"
            raise InvalidArgumentError(msg)

    @property
    def provider_timeout(self) -> float:
        """Per-provider timeout in seconds."""
        return self.provider_timeout_ms / 1000


@dataclass
class AggregatedResult(Generic[T]):
    """Outcome of one aggregated request.

    `failed_providers` maps provider name to a readable error message. Every
    failed provider also appears in `queried_providers`, and when
    `is_merged` is set `merged_from_providers` lists the contributing
    providers (a subset of `queried_providers`).
    """

    result: T | None = None
    provider_name: str | None = None
    quality_score: int = 0
    queried_providers: list[str] = field(default_factory=list)
    failed_providers: dict[str, str] = field(default_factory=dict)
    is_merged: bool = False
    merged_from_providers: list[str] = field(default_factory=list)
    outcome: AggregationOutcome = AggregationOutcome.NOT_FOUND

    @property
    def succeeded(self) -> bool:
        return self.outcome is AggregationOutcome.SUCCESS

    def raise_for_outcome(self) -> T | None:
        """Return the result, raising for terminal failure outcomes.

        NOT_FOUND is not an error: the result (None) is returned.

        Raises:
            AllProvidersFailedError: Every queried provider failed or timed out.
            QualityBelowThresholdError: No result met the minimum quality score.
            NoProvidersAvailableError: No enabled provider supports the request.
        """
        if self.outcome is AggregationOutcome.ALL_FAILED:
            names = ", ".join(self.queried_providers)
            raise AllProvidersFailedError(
                f"All providers failed: {names}", self.failed_providers
            )
        if self.outcome is AggregationOutcome.QUALITY_BELOW_THRESHOLD:
            raise QualityBelowThresholdError(
                "No provider returned a result meeting the minimum quality score",
                self.failed_providers,
            )
        if self.outcome is AggregationOutcome.NO_PROVIDERS:
            raise NoProvidersAvailableError("No enabled provider supports this request")
        return self.result
