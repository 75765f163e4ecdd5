"""Tag reconciliation engine.

Merges the curated releases view and the raw tags view of a repository set
into one deduplicated list. Releases are authoritative; a tag survives only
if it passes the noise filter and its (repository, label) identity is not
already known.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from release_tracker.models import ReleaseEvent
from release_tracker.providers.tag_filter import should_skip_tag


logger = structlog.get_logger()


@dataclass
class ReconcileResult:
    """Reconciled events plus bookkeeping counters."""

    events: list[ReleaseEvent] = field(default_factory=list)
    releases_kept: int = 0
    releases_duplicate: int = 0
    tags_seen: int = 0
    tags_filtered: int = 0
    tags_duplicate: int = 0
    tags_added: int = 0


def reconcile_tags(
    releases: Iterable[ReleaseEvent],
    tags: Iterable[ReleaseEvent],
    *,
    skip: Callable[[str], bool] = should_skip_tag,
) -> ReconcileResult:
    """Reconcile releases with raw tags.

    Args:
        releases: Events from the releases endpoint.
        tags: Events from the tags/refs endpoint.
        skip: Noise predicate applied to each tag label.

    Returns:
        ReconcileResult whose events have unique (repository, label) pairs.
    """
    result = ReconcileResult()
    known: set[tuple[str, str]] = set()

    for release in releases:
        if release.identity in known:
            result.releases_duplicate += 1
            continue
        known.add(release.identity)
        result.events.append(release)
        result.releases_kept += 1

    for tag in tags:
        result.tags_seen += 1

        # Rejected tags never reach the membership check
        if skip(tag.label):
            result.tags_filtered += 1
            continue

        if tag.identity in known:
            result.tags_duplicate += 1
            continue

        if not tag.is_derived_tag:
            tag = tag.model_copy(update={"is_derived_tag": True})

        known.add(tag.identity)
        result.events.append(tag)
        result.tags_added += 1

    logger.debug(
        "tags_reconciled",
        releases_kept=result.releases_kept,
        tags_seen=result.tags_seen,
        tags_filtered=result.tags_filtered,
        tags_duplicate=result.tags_duplicate,
        tags_added=result.tags_added,
    )

    return result
