# ABOUTME: Exception taxonomy shared by the registry, the aggregation engine, and its callers.
# ABOUTME: Provider-level errors are captured as text; only registry errors are raised directly.


class MetasourceError(Exception):
    """Base class for all metasource errors."""


class InvalidArgumentError(MetasourceError, ValueError):
    """Raised when a registry or options call receives an unusable argument."""


class ProviderNotFoundError(InvalidArgumentError):
    """Raised when a registry operation names a provider that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Provider not registered: {name}")
        self.name = name


class ProviderTimeoutError(MetasourceError):
    """A single provider call exceeded its allotted time."""

    def __init__(self, provider_name: str, timeout_ms: int) -> None:
        super().__init__(f"{provider_name} timed out after {timeout_ms} ms")
        self.provider_name = provider_name
        self.timeout_ms = timeout_ms


class ProviderFailureError(MetasourceError):
    """A single provider call raised an error.

    Only the message text of the original exception is kept so callers never
    depend on provider-specific exception types.
    """

    def __init__(self, provider_name: str, message: str) -> None:
        super().__init__(f"{provider_name} failed: {message}")
        self.provider_name = provider_name
        self.message = message


class AggregationError(MetasourceError):
    """Base class for terminal request outcomes raised via raise_for_outcome()."""

    def __init__(self, message: str, failed_providers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.failed_providers = dict(failed_providers or {})


class AllProvidersFailedError(AggregationError):
    """Every dispatched provider in a request failed or timed out."""


class QualityBelowThresholdError(AggregationError):
    """Results were obtained but none met the minimum quality score."""


class NoProvidersAvailableError(AggregationError):
    """No enabled provider supports the requested operation."""
