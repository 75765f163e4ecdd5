"""Integration tests for the fetch, merge and age-filter pipeline."""

from release_tracker.models import ProviderResult
from release_tracker.orchestrator import ProviderOrchestrator
from release_tracker.pipeline import ReleasePipeline, filter_by_age, merge_events
from release_tracker.providers.errors import (
    AuthenticationError,
    ErrorRecord,
    ProviderError,
    ProviderErrorClass,
)
from release_tracker.providers.metrics import ProviderMetrics
from tests.helpers.events import make_event
from tests.helpers.providers import StubProvider
from tests.helpers.time import DAY_SECONDS, FIXED_NOW, FIXED_NOW_TS


AGE_DAYS = 90
AGE_SECONDS = AGE_DAYS * DAY_SECONDS


def _pipeline(run_id: str = "test-run") -> ReleasePipeline:
    return ReleasePipeline(ProviderOrchestrator(run_id), age_limit_seconds=AGE_SECONDS)


class TestReleasePipeline:
    """End-to-end tests over in-memory providers."""

    def setup_method(self) -> None:
        """Reset metrics."""
        ProviderMetrics.reset()

    def test_fault_isolation(self) -> None:
        """Test that failing providers do not suppress the others' events."""
        providers = [
            StubProvider("github", error=AuthenticationError("github", 401)),
            StubProvider(
                "gitlab",
                [make_event("g/p", "v1.0.0", FIXED_NOW_TS, provider="gitlab")],
            ),
            StubProvider("codeberg", error=RuntimeError("connection reset")),
        ]

        result = _pipeline().run(providers, now=FIXED_NOW)

        assert [e.repository for e in result.events] == ["g/p"]
        assert result.has_errors is True
        assert {e.provider for e in result.errors} == {"github", "codeberg"}
        assert [r.provider_name for r in result.provider_results] == [
            "github",
            "gitlab",
            "codeberg",
        ]

    def test_idempotent(self) -> None:
        """Test that identical inputs yield identical output."""
        events = [
            make_event("a/b", f"v1.{i}.0", FIXED_NOW_TS - i * 3600) for i in range(10)
        ]

        first = _pipeline().run([StubProvider("github", events)], now=FIXED_NOW)
        second = _pipeline().run([StubProvider("github", events)], now=FIXED_NOW)

        assert first.events == second.events

    def test_age_boundary(self) -> None:
        """Test the inclusive cutoff at exactly the window edge."""
        boundary = FIXED_NOW_TS - AGE_SECONDS
        events = [
            make_event("a/b", "v1.0.0", boundary),
            make_event("a/b", "v0.9.0", boundary - 1),
            make_event("a/b", "v1.1.0", boundary + 3600),
        ]

        result = _pipeline().run([StubProvider("github", events)], now=FIXED_NOW)

        assert [e.label for e in result.events] == ["v1.1.0", "v1.0.0"]
        assert result.cutoff == boundary
        assert result.dropped_by_age == 1

    def test_age_boundary_in_days(self) -> None:
        """Test N days retained, N+1 excluded, N minus an hour retained."""
        events = [
            make_event("a/b", "v1.0.0", FIXED_NOW_TS - AGE_DAYS * DAY_SECONDS),
            make_event("a/b", "v0.9.0", FIXED_NOW_TS - (AGE_DAYS + 1) * DAY_SECONDS),
            make_event("a/b", "v1.1.0", FIXED_NOW_TS - AGE_DAYS * DAY_SECONDS + 3600),
        ]

        result = _pipeline().run([StubProvider("github", events)], now=FIXED_NOW)

        assert {e.label for e in result.events} == {"v1.0.0", "v1.1.0"}

    def test_global_order_across_providers(self) -> None:
        """Test that events from all providers are sorted together."""
        providers = [
            StubProvider(
                "github",
                [
                    make_event("a/b", "v1.0.0", FIXED_NOW_TS - 300),
                    make_event("a/b", "v0.9.0", FIXED_NOW_TS - 100),
                ],
            ),
            StubProvider(
                "gitlab",
                [make_event("g/p", "v2.0.0", FIXED_NOW_TS - 200, provider="gitlab")],
            ),
        ]

        result = _pipeline().run(providers, now=FIXED_NOW)
        timestamps = [e.published_at for e in result.events]

        assert timestamps == sorted(timestamps, reverse=True)
        assert [e.label for e in result.events] == ["v0.9.0", "v2.0.0", "v1.0.0"]

    def test_merge_with_previous(self) -> None:
        """Test that fresh events replace stale copies and old ones age out."""
        fresh = make_event("a/b", "v1.0.0", FIXED_NOW_TS - 100, notes="fresh")
        previous = [
            make_event("a/b", "v1.0.0", FIXED_NOW_TS - 100, notes="stale"),
            make_event("a/b", "v0.5.0", FIXED_NOW_TS - 5 * DAY_SECONDS),
            make_event("a/b", "v0.1.0", FIXED_NOW_TS - 400 * DAY_SECONDS),
        ]

        result = _pipeline().run(
            [StubProvider("github", [fresh])], now=FIXED_NOW, previous=previous
        )

        assert [(e.label, e.notes) for e in result.events] == [
            ("v1.0.0", "fresh"),
            ("v0.5.0", ""),
        ]
        assert result.previous_count == 3

    def test_no_providers(self) -> None:
        """Test an empty run."""
        result = _pipeline().run([], now=FIXED_NOW)

        assert result.events == []
        assert result.has_errors is False


class TestMergeEvents:
    """Tests for merge_events."""

    def test_same_label_different_provider_kept(self) -> None:
        """Test that identity includes the provider."""
        results = [
            ProviderResult("github", events=[make_event("a/b", "v1.0.0", 10)]),
            ProviderResult(
                "codeberg",
                events=[make_event("a/b", "v1.0.0", 10, provider="codeberg")],
            ),
        ]

        assert len(merge_events(results)) == 2

    def test_failed_results_contribute_nothing(self) -> None:
        """Test that failed providers have no events to merge."""
        error = ErrorRecord.from_exception(
            ProviderError(ProviderErrorClass.FETCH, "down", provider="github")
        )

        assert merge_events([ProviderResult("github", error=error)]) == []


class TestFilterByAge:
    """Tests for filter_by_age."""

    def test_preserves_order(self) -> None:
        """Test that filtering keeps the input order."""
        events = [
            make_event(label=f"v{i}.0.0", published_at=ts)
            for i, ts in enumerate([5, 1, 9, 3])
        ]

        kept = filter_by_age(events, now=10, age_limit_seconds=6)

        assert [e.published_at for e in kept] == [5, 9]
