"""Builders for release events and canned fetch results."""

import json

from release_tracker.fetch.models import FetchError, FetchErrorClass, FetchResult
from release_tracker.models import ReleaseEvent


def make_event(
    repository: str = "a/b",
    label: str = "v1.0.0",
    published_at: int = 1000,
    *,
    provider: str = "github",
    is_derived_tag: bool = False,
    notes: str = "",
    url: str | None = None,
) -> ReleaseEvent:
    """Create a ReleaseEvent with sensible defaults."""
    return ReleaseEvent(
        repository=repository,
        label=label,
        published_at=published_at,
        url=url or f"https://example.com/{repository}/releases/{label}",
        notes=notes,
        provider=provider,
        is_derived_tag=is_derived_tag,
    )


def json_result(
    data: object,
    *,
    url: str = "https://api.example.com/",
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> FetchResult:
    """Create a successful FetchResult carrying a JSON body."""
    return FetchResult(
        status_code=status_code,
        final_url=url,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        body_bytes=json.dumps(data).encode(),
    )


def error_result(
    status_code: int,
    *,
    url: str = "https://api.example.com/",
    headers: dict[str, str] | None = None,
) -> FetchResult:
    """Create a failed FetchResult for an HTTP error status."""
    lowered = {k.lower(): v for k, v in (headers or {}).items()}
    error_class = FetchErrorClass.for_response(status_code, lowered)
    assert error_class is not None
    return FetchResult(
        status_code=status_code,
        final_url=url,
        headers=lowered,
        error=FetchError(
            error_class=error_class,
            message=f"HTTP error ({status_code})",
            status_code=status_code,
        ),
    )
