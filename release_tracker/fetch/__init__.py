"""HTTP access for providers (httpx)."""

from release_tracker.fetch.client import HttpFetcher
from release_tracker.fetch.config import FetchConfig
from release_tracker.fetch.metrics import FetchMetrics
from release_tracker.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    RetryPolicy,
)


__all__ = [
    "FetchConfig",
    "FetchError",
    "FetchErrorClass",
    "FetchMetrics",
    "FetchResult",
    "HttpFetcher",
    "RetryPolicy",
]
