"""GitHub provider.

Enumerates the authenticated user's starred repositories, then for each
repository reads formal releases over REST and raw tags over GraphQL. The
two views are reconciled so a tag only surfaces when no release carries
the same name.

API documentation: https://docs.github.com/en/rest/releases
"""

from typing import Any

from release_tracker.models import ParsedRepoRef, ReleaseEvent
from release_tracker.providers.base import BaseProvider, RepositoryFetch
from release_tracker.providers.errors import (
    InvalidRepositoryError,
    ProviderError,
    ProviderErrorClass,
    ResponseParseError,
)
from release_tracker.providers.fanout import PageFetch, fetch_all_pages
from release_tracker.providers.platform.constants import (
    GITHUB_API_BASE_URL,
    GITHUB_API_VERSION,
    GITHUB_GRAPHQL_URL,
    GITHUB_MAX_QPS,
    GITHUB_RELEASES_PATH,
    GITHUB_STARRED_PATH,
    GITHUB_WEB_BASE_URL,
    PROVIDER_GITHUB,
    RELEASES_PER_PAGE,
)
from release_tracker.providers.platform.helpers import (
    parse_timestamp,
    resolve_total_pages,
)


TAGS_QUERY = """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    refs(
      refPrefix: "refs/tags/"
      first: 100
      after: $cursor
      orderBy: {field: TAG_COMMIT_DATE, direction: DESC}
    ) {
      pageInfo { hasNextPage endCursor }
      nodes {
        name
        target {
          ... on Commit { message committedDate }
          ... on Tag {
            message
            target { ... on Commit { message committedDate } }
          }
        }
      }
    }
  }
}
"""


class GitHubProvider(BaseProvider[ParsedRepoRef]):
    """Release provider for github.com starred repositories."""

    platform = PROVIDER_GITHUB
    max_qps = GITHUB_MAX_QPS

    def _api_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _repository_key(self, repository: ParsedRepoRef) -> str:
        return repository.full_name

    def _list_repositories(self) -> list[ParsedRepoRef]:
        """List starred repositories across all pages.

        Returns:
            Unique repository references in listing order.
        """
        pages = fetch_all_pages(self._fetch_starred_page, self._policy, log=self._log)
        if pages.failed_pages:
            self._metrics.record_failed_pages(self._name, len(pages.failed_pages))

        repositories: list[ParsedRepoRef] = []
        seen: set[str] = set()
        for full_name in pages.items:
            try:
                ref = ParsedRepoRef.parse(full_name)
            except InvalidRepositoryError:
                self._log.warning("invalid_repository_skipped", repository=full_name)
                continue
            if ref.full_name in seen:
                continue
            seen.add(ref.full_name)
            repositories.append(ref)
        return repositories

    def _fetch_starred_page(self, page: int) -> PageFetch[str]:
        per_page = self._policy.per_page
        url = (
            f"{GITHUB_API_BASE_URL}{GITHUB_STARRED_PATH}"
            f"?page={page}&per_page={per_page}"
        )
        result = self._get(url, self._api_headers())
        data = self._decode_json(result, url)
        if not isinstance(data, list):
            msg = "Expected array of starred repositories"
            raise ResponseParseError(msg, provider=self._name, url=url)

        names = [
            item["full_name"]
            for item in data
            if isinstance(item, dict) and isinstance(item.get("full_name"), str)
        ]
        if page > 1:
            return PageFetch(items=names)
        # No Link header means everything fit on one page
        total = resolve_total_pages(result, per_page) or 1
        return PageFetch(items=names, total_pages=total)

    def _fetch_repository(self, repository: ParsedRepoRef) -> RepositoryFetch:
        """Fetch releases and tags for one repository.

        A failure on one side keeps the other side's events; only when both
        fail does the task fail.
        """
        fetched = RepositoryFetch()

        try:
            fetched.releases = self._fetch_releases(repository)
        except ProviderError as e:
            fetched.errors.append(f"releases: {e.message}")

        try:
            fetched.tags = self._fetch_tags(repository)
        except ProviderError as e:
            fetched.errors.append(f"tags: {e.message}")

        if len(fetched.errors) == 2:  # noqa: PLR2004
            raise ProviderError(
                error_class=ProviderErrorClass.FETCH,
                message="; ".join(fetched.errors),
                provider=self._name,
            )
        return fetched

    def _fetch_releases(self, repository: ParsedRepoRef) -> list[ReleaseEvent]:
        path = GITHUB_RELEASES_PATH.format(owner=repository.owner, repo=repository.name)
        url = f"{GITHUB_API_BASE_URL}{path}?per_page={RELEASES_PER_PAGE}"
        data = self._get_json(url, self._api_headers())
        if not isinstance(data, list):
            msg = "Expected array of releases"
            raise ResponseParseError(msg, provider=self._name, url=url)

        events: list[ReleaseEvent] = []
        for release in data:
            if not isinstance(release, dict):
                continue
            event = self._parse_release(release, repository)
            if event is not None:
                events.append(event)
        return events

    def _parse_release(
        self,
        release: dict[str, Any],
        repository: ParsedRepoRef,
    ) -> ReleaseEvent | None:
        """Parse a single release object.

        Drafts and releases without a publication date are skipped.
        """
        tag_name = release.get("tag_name")
        published_at = release.get("published_at")
        if release.get("draft") or not tag_name or not published_at:
            return None

        try:
            timestamp = parse_timestamp(published_at)
        except ValueError:
            self._log.debug(
                "release_date_unparseable",
                repository=repository.full_name,
                tag=tag_name,
                value=published_at,
            )
            return None

        return ReleaseEvent(
            repository=repository.full_name,
            label=tag_name,
            published_at=timestamp,
            url=release.get("html_url") or self._tag_url(repository, tag_name),
            notes=release.get("body") or "",
            provider=self._name,
        )

    def _fetch_tags(self, repository: ParsedRepoRef) -> list[ReleaseEvent]:
        """Page through the repository's tag refs via GraphQL."""
        events: list[ReleaseEvent] = []
        cursor: str | None = None

        for _ in range(self._policy.max_pages):
            data = self._post_graphql(
                GITHUB_GRAPHQL_URL,
                TAGS_QUERY,
                {"owner": repository.owner, "name": repository.name, "cursor": cursor},
            )
            repo_data = data.get("repository")
            if not isinstance(repo_data, dict):
                break
            refs = repo_data.get("refs") or {}

            for node in refs.get("nodes") or []:
                event = self._parse_tag_node(node, repository)
                if event is not None:
                    events.append(event)

            page_info = refs.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not cursor:
                break

        return events

    def _parse_tag_node(
        self,
        node: Any,
        repository: ParsedRepoRef,
    ) -> ReleaseEvent | None:
        """Parse one ref node.

        Lightweight tags point at a Commit. Annotated tags point at a Tag
        object whose own target is the Commit carrying the date.
        """
        if not isinstance(node, dict) or not node.get("name"):
            return None
        target = node.get("target")
        if not isinstance(target, dict):
            return None

        name = node["name"]
        if "committedDate" in target:
            committed = target.get("committedDate")
            message = target.get("message")
        else:
            inner = target.get("target")
            if not isinstance(inner, dict):
                return None
            committed = inner.get("committedDate")
            message = target.get("message") or inner.get("message")

        if not committed:
            return None
        try:
            timestamp = parse_timestamp(committed)
        except ValueError:
            return None

        return ReleaseEvent(
            repository=repository.full_name,
            label=name,
            published_at=timestamp,
            url=self._tag_url(repository, name),
            notes=message or "",
            provider=self._name,
            is_derived_tag=True,
        )

    @staticmethod
    def _tag_url(repository: ParsedRepoRef, tag: str) -> str:
        return f"{GITHUB_WEB_BASE_URL}/{repository.full_name}/releases/tag/{tag}"
