# ABOUTME: Provider health snapshots and the policy that updates them after each provider call.
# ABOUTME: Snapshots are immutable; the policy returns a new snapshot for every outcome.

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum


class ProviderHealth(Enum):
    """Rolling assessment of a provider's reliability."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        """Ordering used for monotonic transitions (higher is worse)."""
        return _SEVERITY[self]


_SEVERITY = {
    ProviderHealth.HEALTHY: 0,
    ProviderHealth.UNKNOWN: 1,
    ProviderHealth.DEGRADED: 2,
    ProviderHealth.UNHEALTHY: 3,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ProviderHealthStatus:
    """Point-in-time health snapshot for one provider."""

    health: ProviderHealth = ProviderHealth.UNKNOWN
    average_response_time_ms: float = 0.0
    success_rate: float = 0.0
    consecutive_failures: int = 0
    total_requests: int = 0
    successful_requests: int = 0
    last_success: datetime | None = None
    last_failure: datetime | None = None
    last_error_message: str | None = None
    last_checked: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class HealthPolicy:
    """Thresholds for health transitions driven by consecutive failures.

    A success never worsens health and a failure never improves it.
    """

    degraded_after: int = 2
    unhealthy_after: int = 5

    def __post_init__(self) -> None:
        if self.degraded_after < 1 or self.unhealthy_after < self.degraded_after:
            msg = (
                "thresholds must satisfy 1 <= degraded_after <= unhealthy_after, "
                f"got {self.degraded_after} and {self.unhealthy_after}"
            )
            raise ValueError(msg)

    def record_success(
        self,
        status: ProviderHealthStatus,
        elapsed_ms: float,
        now: datetime | None = None,
    ) -> ProviderHealthStatus:
        """Return the snapshot that follows a successful call."""
        now = now or _utcnow()
        total = status.total_requests + 1
        successes = status.successful_requests + 1
        average = status.average_response_time_ms + (
            elapsed_ms - status.average_response_time_ms
        ) / successes

        # Unhealthy providers recover one step at a time.
        if status.health is ProviderHealth.UNHEALTHY:
            health = ProviderHealth.DEGRADED
        else:
            health = ProviderHealth.HEALTHY

        return replace(
            status,
            health=health,
            average_response_time_ms=average,
            success_rate=successes / total,
            consecutive_failures=0,
            total_requests=total,
            successful_requests=successes,
            last_success=now,
            last_checked=now,
        )

    def record_failure(
        self,
        status: ProviderHealthStatus,
        message: str,
        now: datetime | None = None,
    ) -> ProviderHealthStatus:
        """Return the snapshot that follows a failed or timed-out call."""
        now = now or _utcnow()
        total = status.total_requests + 1
        failures = status.consecutive_failures + 1

        target = ProviderHealth.HEALTHY
        if failures >= self.unhealthy_after:
            target = ProviderHealth.UNHEALTHY
        elif failures >= self.degraded_after:
            target = ProviderHealth.DEGRADED
        health = max(status.health, target, key=lambda h: h.severity)

        return replace(
            status,
            health=health,
            success_rate=status.successful_requests / total,
            consecutive_failures=failures,
            total_requests=total,
            last_failure=now,
            last_error_message=message,
            last_checked=now,
        )
