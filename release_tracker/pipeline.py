"""Merge, sort and age-filter stage, plus the run pipeline that drives it."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from release_tracker.models import ProviderResult, ReleaseEvent, sort_events_desc
from release_tracker.orchestrator import ProviderOrchestrator
from release_tracker.providers.base import ReleaseProvider
from release_tracker.providers.errors import ErrorRecord


logger = structlog.get_logger()

DEFAULT_AGE_LIMIT_DAYS = 90
SECONDS_PER_DAY = 86400


def merge_events(
    results: Iterable[ProviderResult],
    *,
    previous: Iterable[ReleaseEvent] = (),
) -> list[ReleaseEvent]:
    """Concatenate provider events, then previously published events.

    Events are deduplicated on (provider, repository, label); the first
    occurrence wins, so freshly fetched events replace stale copies from
    the previous feed.

    Args:
        results: Provider results in provider order.
        previous: Events recovered from the previously written feed.

    Returns:
        Merged events, sorted most recent first.
    """
    merged: list[ReleaseEvent] = []
    seen: set[tuple[str, str, str]] = set()

    def add(event: ReleaseEvent) -> None:
        key = (event.provider, event.repository, event.label)
        if key in seen:
            return
        seen.add(key)
        merged.append(event)

    for result in results:
        for event in result.events:
            add(event)
    for event in previous:
        add(event)

    return sort_events_desc(merged)


def filter_by_age(
    events: Iterable[ReleaseEvent],
    now: int,
    age_limit_seconds: int,
) -> list[ReleaseEvent]:
    """Keep events published at or after ``now - age_limit_seconds``.

    A full linear filter; input order is preserved.
    """
    cutoff = now - age_limit_seconds
    return [event for event in events if event.published_at >= cutoff]


@dataclass
class PipelineResult:
    """Final output of one pipeline run."""

    events: list[ReleaseEvent]
    provider_results: list[ProviderResult]
    cutoff: int
    previous_count: int = 0
    dropped_by_age: int = 0
    errors: list[ErrorRecord] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if any provider failed."""
        return bool(self.errors)


class ReleasePipeline:
    """Orchestrate providers, then merge, sort and age-filter their events.

    Provider failures never stop the pipeline; they are reported on the
    result for the caller to act on after the feed has been written.
    """

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        age_limit_seconds: int = DEFAULT_AGE_LIMIT_DAYS * SECONDS_PER_DAY,
    ) -> None:
        """Initialize the pipeline.

        Args:
            orchestrator: Orchestrator that runs the providers.
            age_limit_seconds: Trailing age window.
        """
        self._orchestrator = orchestrator
        self._age_limit_seconds = age_limit_seconds
        self._log = logger.bind(component="pipeline")

    def run(
        self,
        providers: Sequence[ReleaseProvider],
        *,
        now: datetime | None = None,
        previous: Sequence[ReleaseEvent] = (),
    ) -> PipelineResult:
        """Run one full pass.

        Args:
            providers: Configured providers.
            now: Reference time for the age window (defaults to now).
            previous: Events from the previously written feed.

        Returns:
            PipelineResult with events sorted most recent first.
        """
        now = now or datetime.now(UTC)
        now_ts = int(now.timestamp())

        orchestration = self._orchestrator.run(providers)
        merged = merge_events(orchestration.results, previous=previous)
        events = filter_by_age(merged, now_ts, self._age_limit_seconds)

        result = PipelineResult(
            events=events,
            provider_results=orchestration.results,
            cutoff=now_ts - self._age_limit_seconds,
            previous_count=len(previous),
            dropped_by_age=len(merged) - len(events),
            errors=orchestration.errors,
        )

        self._log.info(
            "pipeline_complete",
            event_count=len(events),
            previous_count=result.previous_count,
            dropped_by_age=result.dropped_by_age,
            provider_errors=len(result.errors),
        )
        return result
