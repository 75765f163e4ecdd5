"""Provider orchestrator with parallel execution and failure isolation."""

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from release_tracker.models import ProviderResult, ReleaseEvent
from release_tracker.providers.base import ReleaseProvider
from release_tracker.providers.errors import ErrorRecord, ProviderError
from release_tracker.providers.metrics import ProviderMetrics


logger = structlog.get_logger()


@dataclass
class OrchestrationResult:
    """Result of running every provider once."""

    run_id: str
    started_at: datetime
    finished_at: datetime
    results: list[ProviderResult] = field(default_factory=list)

    @property
    def providers_succeeded(self) -> int:
        """Count providers that finished without a hard failure."""
        return sum(1 for r in self.results if r.success)

    @property
    def providers_failed(self) -> int:
        """Count providers that failed."""
        return sum(1 for r in self.results if not r.success)

    @property
    def errors(self) -> list[ErrorRecord]:
        """Get the error record of every failed provider."""
        return [r.error for r in self.results if r.error is not None]

    @property
    def has_errors(self) -> bool:
        """Check if any provider failed."""
        return any(not r.success for r in self.results)

    @property
    def duration_ms(self) -> float:
        """Get total duration in milliseconds."""
        return (self.finished_at - self.started_at).total_seconds() * 1000


class ProviderOrchestrator:
    """Runs every provider concurrently and isolates their failures.

    Each provider gets its own worker and its own result slot. A provider
    that raises yields a ProviderResult with an error; the others are
    unaffected. ``run`` never raises for a provider failure.
    """

    def __init__(self, run_id: str, metrics: ProviderMetrics | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            run_id: Unique run identifier.
            metrics: Metrics sink (defaults to the shared instance).
        """
        self._run_id = run_id
        self._metrics = metrics or ProviderMetrics.get_instance()
        self._log = logger.bind(component="orchestrator", run_id=run_id)

    def run(self, providers: Sequence[ReleaseProvider]) -> OrchestrationResult:
        """Fetch releases from all providers.

        Args:
            providers: Configured providers.

        Returns:
            OrchestrationResult with one ProviderResult per provider, in
            provider order.
        """
        started_at = datetime.now(UTC)
        self._log.info("orchestration_started", provider_count=len(providers))

        slots: list[ProviderResult | None] = [None] * len(providers)

        def run_slot(index: int, provider: ReleaseProvider) -> None:
            slots[index] = self._run_single_provider(provider)

        if providers:
            with ThreadPoolExecutor(max_workers=len(providers)) as executor:
                futures = [
                    executor.submit(run_slot, index, provider)
                    for index, provider in enumerate(providers)
                ]
                wait(futures)

        results: list[ProviderResult] = []
        for index, slot in enumerate(slots):
            if slot is None:
                # The worker died before writing its slot
                name = f"provider-{index}"
                slot = ProviderResult(
                    provider_name=name,
                    error=ErrorRecord.from_unexpected(
                        name, RuntimeError("provider task did not complete")
                    ),
                )
            results.append(slot)

        outcome = OrchestrationResult(
            run_id=self._run_id,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            results=results,
        )

        self._log.info(
            "orchestration_complete",
            duration_ms=round(outcome.duration_ms, 2),
            total_events=sum(r.event_count for r in results),
            providers_succeeded=outcome.providers_succeeded,
            providers_failed=outcome.providers_failed,
        )
        return outcome

    def _run_single_provider(self, provider: ReleaseProvider) -> ProviderResult:
        """Run one provider and capture its outcome."""
        name = provider.name
        log = self._log.bind(provider=name)
        log.info("provider_started")

        start_time_ns = time.perf_counter_ns()
        events: list[ReleaseEvent] = []
        error: ErrorRecord | None = None

        try:
            events = provider.fetch_releases()
        except ProviderError as e:
            error = ErrorRecord.from_exception(e)
            if error.provider is None:
                error = error.model_copy(update={"provider": name})
        except Exception as e:  # noqa: BLE001
            error = ErrorRecord.from_unexpected(name, e)

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_duration(name, duration_ms)

        if error is not None:
            log.warning(
                "provider_failed",
                error_class=error.error_class.value,
                error=error.message,
                duration_ms=round(duration_ms, 2),
            )
            return ProviderResult(
                provider_name=name, error=error, duration_ms=duration_ms
            )

        log.info(
            "provider_complete",
            event_count=len(events),
            duration_ms=round(duration_ms, 2),
        )
        return ProviderResult(
            provider_name=name, events=events, duration_ms=duration_ms
        )

