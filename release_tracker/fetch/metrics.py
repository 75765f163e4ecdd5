"""Process-wide HTTP traffic counters."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, ClassVar

from release_tracker.fetch.models import FetchErrorClass


@dataclass
class FetchMetrics:
    """Counts requests, retries and failures per API host.

    One instance per process, updated from every fan-out worker.
    """

    requests_by_host: Counter[str] = field(default_factory=Counter)
    status_codes: Counter[int] = field(default_factory=Counter)
    failures: Counter[str] = field(default_factory=Counter)
    retries: int = 0
    bytes_received: int = 0
    elapsed_ms: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    _instance: ClassVar["FetchMetrics | None"] = None
    _instance_lock: ClassVar[Lock] = Lock()

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Return the shared instance, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance."""
        with cls._instance_lock:
            cls._instance = None

    def record_response(self, host: str, status_code: int, size: int) -> None:
        with self._lock:
            self.requests_by_host[host] += 1
            self.status_codes[status_code] += 1
            self.bytes_received += size

    def record_retry(self) -> None:
        with self._lock:
            self.retries += 1

    def record_failure(self, host: str, error_class: FetchErrorClass) -> None:
        with self._lock:
            self.failures[f"{host}:{error_class.value}"] += 1

    def record_elapsed(self, elapsed_ms: float) -> None:
        with self._lock:
            self.elapsed_ms += elapsed_ms

    @property
    def request_count(self) -> int:
        """Responses received across all hosts."""
        with self._lock:
            return sum(self.requests_by_host.values())

    def snapshot(self) -> dict[str, Any]:
        """Copy of the counters, suitable for a log event."""
        with self._lock:
            return {
                "requests_by_host": dict(self.requests_by_host),
                "status_codes": dict(self.status_codes),
                "failures": dict(self.failures),
                "retries": self.retries,
                "bytes_received": self.bytes_received,
                "elapsed_ms": round(self.elapsed_ms, 2),
            }
