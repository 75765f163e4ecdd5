"""Core data model shared by providers, the orchestrator and the feed."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from release_tracker.providers.errors import ErrorRecord, InvalidRepositoryError


class ReleaseEvent(BaseModel):
    """One (repository, label) occurrence worth reporting.

    Created by provider code at fetch time and never mutated afterwards;
    derived values are produced with ``model_copy``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    repository: Annotated[
        str, Field(min_length=1, description="Platform-qualified repository name")
    ]
    label: Annotated[str, Field(min_length=1, description="Tag or release name")]
    published_at: int = Field(description="Unix timestamp in seconds")
    url: Annotated[str, Field(min_length=1, description="Link to the release or tag")]
    notes: str = Field(default="", description="Raw, unrendered release notes")
    provider: Annotated[str, Field(min_length=1, description="Originating provider")]
    is_derived_tag: bool = Field(
        default=False,
        description="True when the event came from a raw tag instead of a release",
    )

    @property
    def identity(self) -> tuple[str, str]:
        """Get the (repository, label) pair used for deduplication."""
        return (self.repository, self.label)

    @property
    def published_datetime(self) -> datetime:
        """Get published_at as an aware UTC datetime."""
        return datetime.fromtimestamp(self.published_at, tz=UTC)


@dataclass
class ProviderResult:
    """Outcome of one provider during an orchestration run."""

    provider_name: str
    events: list[ReleaseEvent] = field(default_factory=list)
    error: ErrorRecord | None = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the provider finished without a hard failure."""
        return self.error is None

    @property
    def event_count(self) -> int:
        """Get number of events produced."""
        return len(self.events)


@dataclass(frozen=True)
class ParsedRepoRef:
    """A repository identifier split into owner and name."""

    owner: str
    name: str

    @classmethod
    def parse(cls, identifier: str) -> "ParsedRepoRef":
        """Parse ``owner/name`` or ``~owner/name``.

        Args:
            identifier: Repository identifier.

        Returns:
            ParsedRepoRef instance.

        Raises:
            InvalidRepositoryError: If the identifier cannot be split.
        """
        value = identifier.strip()
        if value.startswith("~"):
            value = value[1:]

        owner, sep, name = value.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise InvalidRepositoryError(identifier)

        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        """Get the ``owner/name`` form."""
        return f"{self.owner}/{self.name}"

    @property
    def sourcehut_name(self) -> str:
        """Get the ``~owner/name`` form used by SourceHut."""
        return f"~{self.owner}/{self.name}"


def sort_events_desc(events: Iterable[ReleaseEvent]) -> list[ReleaseEvent]:
    """Sort events most recent first.

    The sort is stable, so events with equal timestamps keep their
    relative input order.

    Args:
        events: Events to sort.

    Returns:
        New sorted list.
    """
    return sorted(events, key=lambda e: e.published_at, reverse=True)
