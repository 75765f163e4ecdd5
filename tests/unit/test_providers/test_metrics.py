"""Unit tests for provider metrics."""

import threading

from release_tracker.providers.metrics import ProviderMetrics


class TestProviderMetrics:
    """Tests for ProviderMetrics."""

    def setup_method(self) -> None:
        """Reset the singleton before each test."""
        ProviderMetrics.reset()

    def test_singleton(self) -> None:
        """Test that get_instance returns the same object until reset."""
        first = ProviderMetrics.get_instance()

        assert ProviderMetrics.get_instance() is first
        ProviderMetrics.reset()
        assert ProviderMetrics.get_instance() is not first

    def test_api_call_totals(self) -> None:
        """Test per-provider and overall API call counts."""
        metrics = ProviderMetrics.get_instance()
        metrics.record_api_call("github")
        metrics.record_api_call("github")
        metrics.record_api_call("gitlab")

        assert metrics.get_api_calls_total("github") == 2
        assert metrics.get_api_calls_total("missing") == 0
        assert metrics.get_api_calls_total() == 3

    def test_concurrent_recording(self) -> None:
        """Test that counters are safe under concurrent updates."""
        metrics = ProviderMetrics.get_instance()

        def worker() -> None:
            for _ in range(500):
                metrics.record_api_call("github")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert metrics.get_api_calls_total("github") == 4000

    def test_to_dict(self) -> None:
        """Test the exported dictionary."""
        metrics = ProviderMetrics.get_instance()
        metrics.record_events("github", 5)
        metrics.record_error("gitlab", "auth")
        metrics.record_failed_tasks("github", 2)
        metrics.record_failed_pages("github", 1)
        metrics.record_duration("github", 12.5)

        data = metrics.to_dict()

        assert data["events_by_provider"] == {"github": 5}
        assert data["errors_by_provider"] == {"gitlab:auth": 1}
        assert data["failed_tasks"] == {"github": 2}
        assert data["failed_pages"] == {"github": 1}
        assert data["duration_ms"] == {"github": 12.5}
