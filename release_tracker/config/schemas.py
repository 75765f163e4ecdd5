"""Configuration schema for the release tracker."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from release_tracker.fetch.config import FetchConfig
from release_tracker.pipeline import DEFAULT_AGE_LIMIT_DAYS, SECONDS_PER_DAY
from release_tracker.providers.fanout import FanOutPolicy
from release_tracker.providers.platform.constants import (
    PROVIDER_GITHUB,
    PROVIDER_GITLAB,
    PROVIDER_SOURCEHUT,
)


MAX_AGE_LIMIT_DAYS = 3650

# Provider names already taken by the built-in platforms
RESERVED_FORGEJO_NAMES = frozenset(
    {PROVIDER_GITHUB, PROVIDER_GITLAB, PROVIDER_SOURCEHUT}
)


def _empty_to_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        msg = "URL must start with http:// or https://"
        raise ValueError(msg)
    return v


class ForgejoInstanceConfig(BaseModel):
    """A Forgejo (or Gitea) instance to read starred repositories from.

    Attributes:
        name: Instance name; also the provider name on emitted events.
        base_url: Instance root URL, e.g. https://codeberg.org.
        token: Access token for the instance.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Annotated[str, Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_-]+$")]
    base_url: Annotated[str, Field(min_length=1)]
    token: str | None = None

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate URL starts with http:// or https://."""
        return _validate_http_url(v).rstrip("/")

    @field_validator("token")
    @classmethod
    def normalize_token(cls, v: str | None) -> str | None:
        """Treat an empty token as missing."""
        return _empty_to_none(v)


class SourceHutConfig(BaseModel):
    """SourceHut token plus the repositories to watch.

    SourceHut has no stars, so repositories are listed explicitly as
    ``~user/name``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    token: str | None = None
    repositories: list[str] = Field(default_factory=list)

    @field_validator("token")
    @classmethod
    def normalize_token(cls, v: str | None) -> str | None:
        """Treat an empty token as missing."""
        return _empty_to_none(v)


class FeedConfig(BaseModel):
    """Feed-level metadata written into the Atom document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: Annotated[str, Field(min_length=1, max_length=200)] = "Release Tracker"
    subtitle: str = "New releases from starred repositories"
    link: Annotated[str, Field(min_length=1)] = "https://github.com"
    self_url: str | None = None
    feed_id: str = "urn:release-tracker:releases"

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: str) -> str:
        """Validate URL starts with http:// or https://."""
        return _validate_http_url(v)


class TrackerConfig(BaseModel):
    """Root configuration document.

    Attributes:
        github_token: GitHub personal access token.
        gitlab_token: GitLab personal access token.
        codeberg_token: Codeberg token (shorthand for a single ``codeberg``
            Forgejo instance).
        forgejo: Forgejo instances.
        sourcehut: SourceHut token and repositories.
        age_limit_days: Trailing age window for emitted events.
        fan_out: Worker bounds for per-repository and per-page fan-out.
        fetch: HTTP client settings.
        feed: Atom feed metadata.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    github_token: str | None = None
    gitlab_token: str | None = None
    codeberg_token: str | None = None
    forgejo: list[ForgejoInstanceConfig] = Field(default_factory=list)
    sourcehut: SourceHutConfig = Field(default_factory=SourceHutConfig)
    age_limit_days: Annotated[int, Field(ge=1, le=MAX_AGE_LIMIT_DAYS)] = (
        DEFAULT_AGE_LIMIT_DAYS
    )
    fan_out: FanOutPolicy = Field(default_factory=FanOutPolicy)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)

    @field_validator("github_token", "gitlab_token", "codeberg_token")
    @classmethod
    def normalize_token(cls, v: str | None) -> str | None:
        """Treat an empty token as missing."""
        return _empty_to_none(v)

    @model_validator(mode="after")
    def validate_forgejo(self) -> "TrackerConfig":
        """Ensure instance names are unique and free, without codeberg_token."""
        if self.codeberg_token and self.forgejo:
            msg = (
                "codeberg_token cannot be combined with forgejo instances; "
                "add codeberg as a forgejo instance instead"
            )
            raise ValueError(msg)

        names = [instance.name for instance in self.forgejo]
        reserved = sorted(RESERVED_FORGEJO_NAMES.intersection(names))
        if reserved:
            msg = f"Forgejo instance names clash with built-in providers: {reserved}"
            raise ValueError(msg)

        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            msg = f"Duplicate forgejo instance names found: {duplicates}"
            raise ValueError(msg)
        return self

    @property
    def age_limit_seconds(self) -> int:
        """Get the age window in seconds."""
        return self.age_limit_days * SECONDS_PER_DAY
