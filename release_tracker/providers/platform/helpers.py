"""Shared helper functions for platform providers."""

import math
import re
from datetime import UTC

from dateutil.parser import isoparse

from release_tracker.fetch.models import FetchErrorClass, FetchResult


_LINK_LAST_PATTERN = re.compile(r"<([^>]*)>\s*;\s*rel=\"?last\"?")
_PAGE_PARAM_PATTERN = re.compile(r"[?&]page=(\d+)")


def is_auth_error(result: FetchResult) -> bool:
    """Check if a fetch result represents an authentication error.

    Args:
        result: The fetch result to check.

    Returns:
        True if the server rejected the credentials (401, or 403 that is
        not quota exhaustion).
    """
    return (
        result.error is not None
        and result.error.error_class == FetchErrorClass.AUTH_REJECTED
    )


def build_bearer_auth_header(token: str | None) -> dict[str, str]:
    """Build Authorization header with Bearer token if provided.

    Args:
        token: Optional Bearer token.

    Returns:
        Dictionary with Authorization header, or empty dict if no token.
    """
    if token:
        return {"Authorization": f"Bearer {token}"}
    return {}


def parse_timestamp(value: str | int) -> int:
    """Parse an API timestamp into Unix seconds.

    Accepts an integer (or integer string) or ISO 8601 with optional
    fractional seconds and a ``Z`` or numeric offset. Naive values are
    taken as UTC.

    Args:
        value: Timestamp to parse.

    Returns:
        Unix timestamp in seconds.

    Raises:
        ValueError: If the value is not a recognizable timestamp.
    """
    if isinstance(value, bool):
        msg = f"Invalid timestamp: {value!r}"
        raise ValueError(msg)
    if isinstance(value, int):
        return value

    text = value.strip()
    if not text:
        msg = "Empty timestamp"
        raise ValueError(msg)

    if text.lstrip("-").isdigit():
        return int(text)

    parsed = isoparse(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return math.floor(parsed.timestamp())


def parse_link_last_page(link_header: str | None) -> int | None:
    """Extract the last page number from an RFC 8288 Link header.

    Args:
        link_header: Value of the Link header.

    Returns:
        Page number of the ``rel="last"`` link, or None.
    """
    if not link_header:
        return None

    for part in link_header.split(","):
        match = _LINK_LAST_PATTERN.search(part)
        if not match:
            continue
        page = _PAGE_PARAM_PATTERN.search(match.group(1))
        if page:
            return int(page.group(1))
    return None


def resolve_total_pages(result: FetchResult, per_page: int) -> int | None:
    """Determine the total page count of a listing response.

    Tries the Link header, then ``X-Total-Pages``, then ``X-Total-Count``.
    A response with a Link header but no ``last`` relation is the last page.

    Args:
        result: Response for page 1.
        per_page: Page size that was requested.

    Returns:
        Total pages, or None when the platform does not say.
    """
    link = result.header("link")
    last_page = parse_link_last_page(link)
    if last_page is not None:
        return last_page
    if link and 'rel="next"' not in link:
        return 1

    total_pages = result.header("x-total-pages")
    if total_pages and total_pages.isdigit():
        return max(1, int(total_pages))

    total_count = result.header("x-total-count")
    if total_count and total_count.isdigit():
        return max(1, math.ceil(int(total_count) / per_page))

    return None

