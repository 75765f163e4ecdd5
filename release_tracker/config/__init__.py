"""Configuration loading and validation."""

from release_tracker.config.loader import ConfigLoader, ConfigValidationError
from release_tracker.config.schemas import (
    FeedConfig,
    ForgejoInstanceConfig,
    SourceHutConfig,
    TrackerConfig,
)


__all__ = [
    "ConfigLoader",
    "ConfigValidationError",
    "FeedConfig",
    "ForgejoInstanceConfig",
    "SourceHutConfig",
    "TrackerConfig",
]
