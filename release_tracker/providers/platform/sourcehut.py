"""SourceHut provider for an explicit list of git.sr.ht repositories.

git.sr.ht has no stars and no releases, so every event is a derived tag.
Each repository costs two GraphQL round trips: one for its tag refs and one
for the committer time of the commits those refs point at.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from release_tracker.fetch.client import HttpFetcher
from release_tracker.models import ParsedRepoRef, ReleaseEvent
from release_tracker.providers.base import BaseProvider, RepositoryFetch
from release_tracker.providers.errors import InvalidRepositoryError
from release_tracker.providers.fanout import FanOutPolicy
from release_tracker.providers.platform.constants import (
    PROVIDER_SOURCEHUT,
    SOURCEHUT_FALLBACK_TIMESTAMP,
    SOURCEHUT_GRAPHQL_URL,
    SOURCEHUT_MAX_QPS,
    SOURCEHUT_WEB_BASE_URL,
    TAG_REF_PREFIX,
)
from release_tracker.providers.platform.helpers import parse_timestamp
from release_tracker.providers.platform.rate_limiter import RateLimiterProtocol


REFERENCES_QUERY = """
query($username: String!, $name: String!) {
  user(username: $username) {
    repository(name: $name) {
      name
      references { results { name target } }
    }
  }
}
"""

COMMIT_TIMES_QUERY = """
query($username: String!, $name: String!, $ids: [String!]!) {
  user(username: $username) {
    repository(name: $name) {
      objects(ids: $ids) {
        id
        ... on Commit { committer { time } }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class TagRef:
    """A tag name and the commit it points at."""

    name: str
    commit_id: str


class SourceHutProvider(BaseProvider[ParsedRepoRef]):
    """Tag provider for configured git.sr.ht repositories."""

    platform = PROVIDER_SOURCEHUT
    max_qps = SOURCEHUT_MAX_QPS

    def __init__(  # noqa: PLR0913
        self,
        http_client: HttpFetcher,
        *,
        token: str | None,
        repositories: Sequence[str],
        run_id: str = "",
        policy: FanOutPolicy | None = None,
        rate_limiter: RateLimiterProtocol | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            http_client: HTTP client for API calls.
            token: Personal access token; None disables the provider.
            repositories: Identifiers like ``~user/repo``.
            run_id: Run identifier for logging.
            policy: Fan-out bounds.
            rate_limiter: Optional rate limiter for dependency injection.
        """
        super().__init__(
            http_client,
            token=token,
            run_id=run_id,
            policy=policy,
            rate_limiter=rate_limiter,
        )
        self._repositories = list(repositories)

    @property
    def has_credentials(self) -> bool:
        """A token and at least one repository are both required."""
        return self._token is not None and bool(self._repositories)

    def _repository_key(self, repository: ParsedRepoRef) -> str:
        return repository.sourcehut_name

    def _list_repositories(self) -> list[ParsedRepoRef]:
        repositories: list[ParsedRepoRef] = []
        seen: set[str] = set()
        for identifier in self._repositories:
            try:
                ref = ParsedRepoRef.parse(identifier)
            except InvalidRepositoryError:
                self._log.warning("invalid_repository_skipped", repository=identifier)
                continue
            if ref.sourcehut_name not in seen:
                seen.add(ref.sourcehut_name)
                repositories.append(ref)
        return repositories

    def _fetch_repository(self, repository: ParsedRepoRef) -> RepositoryFetch:
        tag_refs = self._fetch_tag_refs(repository)
        if not tag_refs:
            return RepositoryFetch()

        commit_ids = sorted({ref.commit_id for ref in tag_refs})
        commit_times = self._fetch_commit_times(repository, commit_ids)

        tags: list[ReleaseEvent] = []
        for ref in tag_refs:
            committed = commit_times.get(ref.commit_id, SOURCEHUT_FALLBACK_TIMESTAMP)
            try:
                timestamp = parse_timestamp(committed)
            except ValueError:
                timestamp = parse_timestamp(SOURCEHUT_FALLBACK_TIMESTAMP)

            tags.append(
                ReleaseEvent(
                    repository=repository.sourcehut_name,
                    label=ref.name,
                    published_at=timestamp,
                    url=(
                        f"{SOURCEHUT_WEB_BASE_URL}/{repository.sourcehut_name}"
                        f"/refs/{ref.name}"
                    ),
                    notes=f"Tag {ref.name} (commit: {ref.commit_id})",
                    provider=self._name,
                    is_derived_tag=True,
                )
            )

        return RepositoryFetch(tags=tags)

    def _fetch_tag_refs(self, repository: ParsedRepoRef) -> list[TagRef]:
        """List ``refs/tags/*`` references that point at a commit id."""
        data = self._post_graphql(
            SOURCEHUT_GRAPHQL_URL,
            REFERENCES_QUERY,
            {"username": repository.owner, "name": repository.name},
        )
        repo_data = (data.get("user") or {}).get("repository")
        if not isinstance(repo_data, dict):
            self._log.warning(
                "repository_not_found", repository=repository.sourcehut_name
            )
            return []

        results = (repo_data.get("references") or {}).get("results") or []
        refs: list[TagRef] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            target = item.get("target")
            if not isinstance(name, str) or not name.startswith(TAG_REF_PREFIX):
                continue
            # Symbolic targets (e.g. refs/heads/master) are not commits
            if not isinstance(target, str) or not target or target.startswith("refs/"):
                continue
            refs.append(TagRef(name=name[len(TAG_REF_PREFIX) :], commit_id=target))
        return refs

    def _fetch_commit_times(
        self,
        repository: ParsedRepoRef,
        commit_ids: list[str],
    ) -> dict[str, str]:
        """Map commit id to committer time."""
        data = self._post_graphql(
            SOURCEHUT_GRAPHQL_URL,
            COMMIT_TIMES_QUERY,
            {"username": repository.owner, "name": repository.name, "ids": commit_ids},
        )
        repo_data = (data.get("user") or {}).get("repository") or {}
        objects: list[Any] = repo_data.get("objects") or []

        times: dict[str, str] = {}
        for obj in objects:
            if not isinstance(obj, dict):
                continue
            committer = obj.get("committer")
            if isinstance(obj.get("id"), str) and isinstance(committer, dict):
                time_value = committer.get("time")
                if isinstance(time_value, str):
                    times[obj["id"]] = time_value
        return times
