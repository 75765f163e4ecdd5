"""Atom feed renderer using Jinja2 templates."""

import re
import time
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog
from jinja2 import Environment, PackageLoader, select_autoescape

from release_tracker.config.schemas import FeedConfig
from release_tracker.models import ReleaseEvent


logger = structlog.get_logger()

FEED_TEMPLATE = "releases.xml"

# Characters that are not allowed anywhere in an XML 1.0 document
_XML_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as RFC 3339 in UTC."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _xml_safe(text: str) -> str:
    return _XML_INVALID_CHARS.sub("", text)


class AtomFeedRenderer:
    """Renders release events as an Atom feed.

    Notes are passed through verbatim as text; auto-escaping covers XML
    special characters.
    """

    def __init__(self, feed_config: FeedConfig, run_id: str = "") -> None:
        """Initialize the renderer.

        Args:
            feed_config: Feed-level metadata.
            run_id: Unique run identifier.
        """
        self._feed_config = feed_config
        self._log = logger.bind(run_id=run_id, component="feed")
        self._env = Environment(
            loader=PackageLoader("release_tracker.feed", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(
        self,
        events: Sequence[ReleaseEvent],
        generated_at: datetime | None = None,
    ) -> str:
        """Render events, in the given order, as an Atom document.

        Args:
            events: Events sorted most recent first.
            generated_at: Feed ``updated`` time (defaults to now).

        Returns:
            The Atom XML document.
        """
        start_time = time.perf_counter()
        generated_at = generated_at or datetime.now(UTC)

        entries = [
            {
                "title": _xml_safe(f"{event.repository} - {event.label}"),
                "url": event.url,
                "updated": format_timestamp(event.published_datetime),
                "provider": event.provider,
                "notes": _xml_safe(event.notes),
                "is_derived_tag": event.is_derived_tag,
            }
            for event in events
        ]

        template = self._env.get_template(FEED_TEMPLATE)
        content = template.render(
            feed=self._feed_config,
            updated=format_timestamp(generated_at),
            entries=entries,
        )

        self._log.info(
            "feed_rendered",
            entry_count=len(entries),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return content
