# ABOUTME: Unit tests for the ProviderRegistry.
# ABOUTME: Validates priority ordering, enable/disable, upsert, health write-back, and locking.

import threading

import pytest

from metasource.core.registry import ProviderRegistry
from metasource.errors import InvalidArgumentError, ProviderNotFoundError
from metasource.metadata.health import HealthPolicy, ProviderHealth, ProviderHealthStatus
from tests.fixtures.providers import FakeProvider


def _names(providers: list) -> list[str]:
    return [p.name for p in providers]


class TestRegistration:
    """Tests for register, unregister, and lookup."""

    def test_providers_ordered_by_priority(self) -> None:
        """Providers come back in ascending priority regardless of registration order."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("c", priority=3))
        registry.register(FakeProvider("b", priority=2))
        registry.register(FakeProvider("a", priority=1))
        assert _names(registry.get_providers()) == ["a", "b", "c"]

    def test_equal_priority_keeps_registration_order(self) -> None:
        """Ties are broken by registration order and stay stable."""
        registry = ProviderRegistry()
        for name in ("first", "second", "third"):
            registry.register(FakeProvider(name, priority=5))
        assert _names(registry.get_providers()) == ["first", "second", "third"]
        assert _names(registry.get_providers()) == ["first", "second", "third"]

    def test_register_none_rejected(self) -> None:
        """Registering None raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            ProviderRegistry().register(None)

    def test_reregistering_replaces_provider(self) -> None:
        """Registering an existing name replaces the provider and its settings."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a", priority=1))
        registry.register(FakeProvider("b", priority=2))
        replacement = FakeProvider("a", priority=3, enabled=False)
        registry.register(replacement)

        assert len(registry) == 2
        assert registry.get("a").provider is replacement
        assert registry.get("a").priority == 3
        assert registry.get("a").enabled is False
        assert _names(registry.get_providers()) == ["b", "a"]

    def test_reregistering_keeps_sequence_and_health(self) -> None:
        """Upsert keeps registration order for ties and the accumulated health."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a", priority=1))
        registry.register(FakeProvider("b", priority=1))
        registry.record_success("a", 50.0)
        registry.register(FakeProvider("a", priority=1))

        assert _names(registry.get_providers()) == ["a", "b"]
        assert registry.get("a").health.health is ProviderHealth.HEALTHY

    def test_unregister_removes_provider(self) -> None:
        """Unregistered providers disappear from every query."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a", priority=1))
        registry.unregister("a")
        assert "a" not in registry
        assert registry.get_providers() == []

    def test_unregister_unknown_raises(self) -> None:
        """Unregistering an unknown name raises ProviderNotFoundError."""
        with pytest.raises(ProviderNotFoundError, match="missing"):
            ProviderRegistry().unregister("missing")

    def test_provider_not_found_is_invalid_argument(self) -> None:
        """ProviderNotFoundError is a kind of InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            ProviderRegistry().enable("missing")

    def test_initial_health_comes_from_provider(self) -> None:
        """A new entry starts from the provider's own health snapshot."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        assert registry.get("a").health.health is ProviderHealth.UNKNOWN


class TestEnableDisable:
    """Tests for enable, disable, priority overrides, and the primary provider."""

    def test_disable_changes_primary(self) -> None:
        """Disabling the priority-1 provider promotes the priority-2 provider."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("one", priority=1))
        registry.register(FakeProvider("two", priority=2))
        registry.disable("one")

        primary = registry.get_primary_provider()
        assert primary is not None
        assert primary.name == "two"

    def test_disabled_excluded_from_enabled_list(self) -> None:
        """get_enabled_providers skips disabled providers but get_providers keeps them."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("one", priority=1))
        registry.register(FakeProvider("two", priority=2, enabled=False))
        assert _names(registry.get_enabled_providers()) == ["one"]
        assert _names(registry.get_providers()) == ["one", "two"]

    def test_enable_restores_provider(self) -> None:
        """A re-enabled provider returns to its place in priority order."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("one", priority=1, enabled=False))
        registry.register(FakeProvider("two", priority=2))
        registry.enable("one")
        assert _names(registry.get_enabled_providers()) == ["one", "two"]

    def test_no_enabled_provider_means_no_primary(self) -> None:
        """With every provider disabled there is no primary."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("one", enabled=False))
        assert registry.get_primary_provider() is None

    def test_set_priority_reorders(self) -> None:
        """Priority overrides change ordering without touching the provider."""
        registry = ProviderRegistry()
        provider = FakeProvider("one", priority=1)
        registry.register(provider)
        registry.register(FakeProvider("two", priority=2))
        registry.set_priority("one", 10)
        assert _names(registry.get_providers()) == ["two", "one"]
        assert provider.priority == 1


class TestHealthTracking:
    """Tests for health snapshots held by the registry."""

    def test_update_provider_health_replaces_snapshot(self) -> None:
        """update_provider_health stores the given snapshot verbatim."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        status = ProviderHealthStatus(health=ProviderHealth.DEGRADED, consecutive_failures=3)
        registry.update_provider_health("a", status)
        assert registry.get_providers_health_status() == {"a": status}

    def test_update_unknown_provider_raises(self) -> None:
        """Health updates for unregistered names raise ProviderNotFoundError."""
        with pytest.raises(ProviderNotFoundError):
            ProviderRegistry().update_provider_health("ghost", ProviderHealthStatus())

    def test_record_failure_applies_policy(self) -> None:
        """Consecutive failures degrade the provider per the registry's policy."""
        registry = ProviderRegistry(health_policy=HealthPolicy(degraded_after=1, unhealthy_after=2))
        registry.register(FakeProvider("a"))
        assert registry.record_failure("a", "boom").health is ProviderHealth.DEGRADED
        assert registry.record_failure("a", "boom").health is ProviderHealth.UNHEALTHY
        assert registry.get("a").health.last_error_message == "boom"

    def test_record_success_applies_policy(self) -> None:
        """A success marks the provider healthy and records timing."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        status = registry.record_success("a", 80.0)
        assert status.health is ProviderHealth.HEALTHY
        assert status.average_response_time_ms == 80.0

    def test_health_status_in_priority_order(self) -> None:
        """The health map lists every provider, disabled ones included."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("b", priority=2, enabled=False))
        registry.register(FakeProvider("a", priority=1))
        assert list(registry.get_providers_health_status()) == ["a", "b"]


class TestConcurrency:
    """Tests for thread safety of registry mutation and reads."""

    def test_concurrent_health_updates_are_not_lost(self) -> None:
        """Concurrent record_success calls all land in the counters."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        per_thread = 200

        def worker() -> None:
            for _ in range(per_thread):
                registry.record_success("a", 1.0)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert registry.get("a").health.total_requests == 8 * per_thread

    def test_reads_during_mutation_see_consistent_order(self) -> None:
        """Readers never observe a partially updated ordering."""
        registry = ProviderRegistry()
        for index in range(10):
            registry.register(FakeProvider(f"p{index}", priority=index))
        errors: list[str] = []
        stop = threading.Event()

        def reader() -> None:
            while not stop.is_set():
                priorities = [e.priority for e in registry.get_entries()]
                if priorities != sorted(priorities):
                    errors.append(f"unsorted: {priorities}")

        def writer() -> None:
            for round_ in range(200):
                registry.set_priority(f"p{round_ % 10}", 20 - round_ % 10)
                registry.disable(f"p{round_ % 10}")
                registry.enable(f"p{round_ % 10}")
            stop.set()

        threads = [threading.Thread(target=reader), threading.Thread(target=writer)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(registry) == 10
