"""Recover release events from a previously written Atom feed."""

import calendar
from pathlib import Path
from typing import Any

import feedparser
import structlog

from release_tracker.models import ReleaseEvent


logger = structlog.get_logger()

TITLE_SEPARATOR = " - "
DERIVED_TAG_TERM = "tag"


def load_previous_events(path: Path, run_id: str = "") -> list[ReleaseEvent]:
    """Parse the feed at ``path`` back into events.

    Entries missing a title, link, provider or timestamp are skipped.
    Notes come back without leading or trailing whitespace, which feedparser
    strips from every summary.

    Args:
        path: Feed written by an earlier run.
        run_id: Run identifier for logging.

    Returns:
        Recovered events in document order; empty if the file is missing
        or unreadable.
    """
    log = logger.bind(component="feed_reader", run_id=run_id, path=str(path))

    if not path.exists():
        log.debug("previous_feed_missing")
        return []

    parsed = feedparser.parse(path.read_bytes())
    if parsed.bozo and not parsed.entries:
        log.warning(
            "previous_feed_unreadable",
            error=str(parsed.get("bozo_exception", "unknown")),
        )
        return []

    events: list[ReleaseEvent] = []
    skipped = 0
    for entry in parsed.entries:
        event = _entry_to_event(entry)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        log.warning("previous_entries_skipped", skipped_count=skipped)
    log.info("previous_feed_loaded", event_count=len(events))
    return events


def _entry_to_event(entry: Any) -> ReleaseEvent | None:
    title = entry.get("title") or ""
    repository, sep, label = title.partition(TITLE_SEPARATOR)
    if not sep or not repository or not label:
        return None

    url = entry.get("link") or entry.get("id")
    updated = entry.get("updated_parsed")
    if not url or updated is None:
        return None

    terms = [tag.get("term") for tag in entry.get("tags") or [] if tag.get("term")]
    provider = entry.get("author") or (terms[0] if terms else None)
    if not provider:
        return None

    return ReleaseEvent(
        repository=repository,
        label=label,
        published_at=calendar.timegm(updated),
        url=url,
        notes=entry.get("summary") or "",
        provider=provider,
        is_derived_tag=DERIVED_TAG_TERM in terms[1:],
    )
