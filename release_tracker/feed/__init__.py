"""Atom feed writer and previous-feed reader."""

from release_tracker.feed.atom import AtomFeedRenderer
from release_tracker.feed.io import GeneratedFile, write_feed
from release_tracker.feed.reader import load_previous_events


__all__ = [
    "AtomFeedRenderer",
    "GeneratedFile",
    "load_previous_events",
    "write_feed",
]
