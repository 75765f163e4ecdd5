"""Metrics collection for providers."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "ProviderMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class ProviderMetrics:
    """Thread-safe metrics for provider operations.

    Tracks API calls, events emitted, failed tasks and durations per
    provider. Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    api_calls: Counter[str] = field(default_factory=Counter)
    events_by_provider: Counter[str] = field(default_factory=Counter)
    errors_by_provider: Counter[tuple[str, str]] = field(default_factory=Counter)
    failed_tasks: Counter[str] = field(default_factory=Counter)
    failed_pages: Counter[str] = field(default_factory=Counter)
    duration_ms: dict[str, float] = field(default_factory=dict)

    @classmethod
    def get_instance(cls) -> "ProviderMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared ProviderMetrics instance.
        """
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_api_call(self, provider: str) -> None:
        """Record an API call for a provider."""
        with self._lock:
            self.api_calls[provider] += 1

    def record_events(self, provider: str, count: int) -> None:
        """Record events emitted by a provider."""
        with self._lock:
            self.events_by_provider[provider] += count

    def record_error(self, provider: str, error_type: str) -> None:
        """Record an error for a provider.

        Args:
            provider: Provider name.
            error_type: Type of error (e.g., 'auth', 'parse', 'fetch').
        """
        with self._lock:
            self.errors_by_provider[(provider, error_type)] += 1

    def record_failed_tasks(self, provider: str, count: int) -> None:
        """Record repository tasks that failed."""
        with self._lock:
            self.failed_tasks[provider] += count

    def record_failed_pages(self, provider: str, count: int) -> None:
        """Record listing pages that failed."""
        with self._lock:
            self.failed_pages[provider] += count

    def record_duration(self, provider: str, duration_ms: float) -> None:
        """Record provider wall-clock duration."""
        with self._lock:
            self.duration_ms[provider] = duration_ms

    def get_api_calls_total(self, provider: str | None = None) -> int:
        """Get total API calls.

        Args:
            provider: Optional provider to filter by.

        Returns:
            Total API call count.
        """
        with self._lock:
            if provider is None:
                return sum(self.api_calls.values())
            return self.api_calls.get(provider, 0)

    def to_dict(self) -> dict[str, object]:
        """Export metrics as dictionary."""
        with self._lock:
            return {
                "api_calls": dict(self.api_calls),
                "events_by_provider": dict(self.events_by_provider),
                "errors_by_provider": {
                    f"{p}:{t}": c for (p, t), c in self.errors_by_provider.items()
                },
                "failed_tasks": dict(self.failed_tasks),
                "failed_pages": dict(self.failed_pages),
                "duration_ms": dict(self.duration_ms),
            }
