"""Tests for reading a previously written feed."""

from pathlib import Path

from release_tracker.config.schemas import FeedConfig
from release_tracker.feed.atom import AtomFeedRenderer
from release_tracker.feed.reader import load_previous_events
from tests.helpers.events import make_event
from tests.helpers.time import FIXED_NOW


ENTRY_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>t</title>
  <id>urn:test</id>
  <updated>2024-06-01T12:00:00Z</updated>
  {entries}
</feed>
"""


class TestLoadPreviousEvents:
    """Tests for load_previous_events."""

    def test_recovers_rendered_events(self, tmp_path: Path) -> None:
        """Test that events written by the renderer are read back."""
        events = [
            make_event("a/b", "v2.0.0", 1714521600, notes="Release notes"),
            make_event(
                "~u/r", "v1.0", 1711929600, provider="sourcehut", is_derived_tag=True
            ),
        ]
        path = tmp_path / "releases.xml"
        path.write_text(
            AtomFeedRenderer(FeedConfig()).render(events, generated_at=FIXED_NOW),
            encoding="utf-8",
        )

        recovered = load_previous_events(path)

        assert recovered == events

    def test_notes_lose_surrounding_whitespace(self, tmp_path: Path) -> None:
        """Test that reloaded notes are stripped and everything else survives."""
        event = make_event("a/b", "v1.0.0", 1714521600, notes="  padded notes  ")
        path = tmp_path / "releases.xml"
        path.write_text(
            AtomFeedRenderer(FeedConfig()).render([event], generated_at=FIXED_NOW),
            encoding="utf-8",
        )

        (recovered,) = load_previous_events(path)

        assert recovered.notes == "padded notes"
        assert recovered == event.model_copy(update={"notes": "padded notes"})

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test the first run, when no feed exists yet."""
        assert load_previous_events(tmp_path / "nope.xml") == []

    def test_unreadable_file(self, tmp_path: Path) -> None:
        """Test that garbage is treated as no previous events."""
        path = tmp_path / "releases.xml"
        path.write_bytes(b"\x00\x01 this is not a feed")

        assert load_previous_events(path) == []

    def test_incomplete_entries_skipped(self, tmp_path: Path) -> None:
        """Test that entries missing required parts are dropped."""
        entries = """
  <entry>
    <title>no separator</title>
    <link href="https://x/1"/>
    <updated>2024-05-01T00:00:00Z</updated>
    <author><name>github</name></author>
  </entry>
  <entry>
    <title>a/b - v1.0.0</title>
    <link href="https://x/2"/>
    <author><name>github</name></author>
  </entry>
  <entry>
    <title>a/b - v1.1.0</title>
    <link href="https://x/3"/>
    <updated>2024-05-01T00:00:00Z</updated>
    <category term="gitlab"/>
  </entry>
"""
        path = tmp_path / "releases.xml"
        path.write_text(ENTRY_TEMPLATE.format(entries=entries), encoding="utf-8")

        recovered = load_previous_events(path)

        assert len(recovered) == 1
        assert recovered[0].label == "v1.1.0"
        assert recovered[0].provider == "gitlab"
        assert recovered[0].published_at == 1714521600
