# ABOUTME: Thread-safe, in-process registry of metadata providers and their health snapshots.
# ABOUTME: Exposes priority-ordered snapshots; never performs I/O while holding its lock.

import logging
import threading
from dataclasses import dataclass, replace

from metasource.errors import InvalidArgumentError, ProviderNotFoundError
from metasource.metadata.health import HealthPolicy, ProviderHealthStatus
from metasource.metadata.provider import MetadataProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """Snapshot of one registered provider with its effective settings.

    `priority` and `enabled` start from the provider's own values and can be
    overridden through the registry without touching the provider.
    """

    provider: MetadataProvider
    priority: int
    enabled: bool
    health: ProviderHealthStatus
    sequence: int

    @property
    def name(self) -> str:
        return self.provider.name


class ProviderRegistry:
    """Catalogue of providers used by the aggregator at request time.

    Built once at startup and passed to everything that needs it. Registering
    a provider whose name is already present replaces it (last registration
    wins) while keeping its place in registration order and its health history.
    """

    def __init__(self, health_policy: HealthPolicy | None = None) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        self._lock = threading.Lock()
        self._next_sequence = 0
        self._health_policy = health_policy or HealthPolicy()

    def register(self, provider: MetadataProvider | None) -> None:
        """Insert or replace a provider, keyed by its name.

        Raises:
            InvalidArgumentError: If provider is None.
        """
        if provider is None:
            raise InvalidArgumentError("provider must not be None")

        name = provider.name
        priority = provider.priority
        enabled = provider.enabled
        health = provider.get_health_status()

        with self._lock:
            existing = self._entries.get(name)
            if existing is not None:
                logger.debug("Replacing metadata provider: %s (priority %d)", name, priority)
                self._entries[name] = replace(
                    existing, provider=provider, priority=priority, enabled=enabled
                )
                return
            logger.debug("Registering metadata provider: %s (priority %d)", name, priority)
            self._entries[name] = RegistryEntry(
                provider=provider,
                priority=priority,
                enabled=enabled,
                health=health,
                sequence=self._next_sequence,
            )
            self._next_sequence += 1

    def unregister(self, name: str) -> None:
        with self._lock:
            if self._entries.pop(name, None) is None:
                raise ProviderNotFoundError(name)

    def get(self, name: str) -> RegistryEntry:
        with self._lock:
            return self._entry(name)

    def get_entries(self) -> list[RegistryEntry]:
        """All entries ordered by priority, ties broken by registration order."""
        with self._lock:
            return self._ordered()

    def get_providers(self) -> list[MetadataProvider]:
        """All providers ordered by priority, ties broken by registration order."""
        with self._lock:
            return [entry.provider for entry in self._ordered()]

    def get_enabled_providers(self) -> list[MetadataProvider]:
        """Enabled providers only, in the same order as get_providers()."""
        with self._lock:
            return [entry.provider for entry in self._ordered() if entry.enabled]

    def get_primary_provider(self) -> MetadataProvider | None:
        """The highest-precedence enabled provider, or None if there is none."""
        enabled = self.get_enabled_providers()
        return enabled[0] if enabled else None

    def enable(self, name: str) -> None:
        self._update(name, enabled=True)
        logger.info("Enabled metadata provider: %s", name)

    def disable(self, name: str) -> None:
        self._update(name, enabled=False)
        logger.info("Disabled metadata provider: %s", name)

    def set_priority(self, name: str, priority: int) -> None:
        self._update(name, priority=priority)
        logger.info("Set priority of metadata provider %s to %d", name, priority)

    def update_provider_health(self, name: str, status: ProviderHealthStatus) -> None:
        """Replace the health snapshot for a provider."""
        self._update(name, health=status)

    def get_providers_health_status(self) -> dict[str, ProviderHealthStatus]:
        with self._lock:
            return {entry.name: entry.health for entry in self._ordered()}

    def record_success(self, name: str, elapsed_ms: float) -> ProviderHealthStatus:
        """Apply the health policy for a successful call and return the new snapshot."""
        with self._lock:
            entry = self._entry(name)
            status = self._health_policy.record_success(entry.health, elapsed_ms)
            self._entries[name] = replace(entry, health=status)
            return status

    def record_failure(self, name: str, message: str) -> ProviderHealthStatus:
        """Apply the health policy for a failed call and return the new snapshot."""
        with self._lock:
            entry = self._entry(name)
            status = self._health_policy.record_failure(entry.health, message)
            self._entries[name] = replace(entry, health=status)
        if status.health is not entry.health.health:
            logger.warning(
                "Provider %s health changed from %s to %s after %d consecutive failure(s)",
                name,
                entry.health.health.value,
                status.health.value,
                status.consecutive_failures,
            )
        return status

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def _entry(self, name: str) -> RegistryEntry:
        """Look up an entry. Caller must hold the lock."""
        entry = self._entries.get(name)
        if entry is None:
            raise ProviderNotFoundError(name)
        return entry

    def _ordered(self) -> list[RegistryEntry]:
        """Entries sorted by (priority, sequence). Caller must hold the lock."""
        return sorted(self._entries.values(), key=lambda e: (e.priority, e.sequence))

    def _update(self, name: str, **changes: object) -> None:
        with self._lock:
            entry = self._entry(name)
            self._entries[name] = replace(entry, **changes)
