"""GitLab provider for gitlab.com starred projects."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from release_tracker.models import ReleaseEvent
from release_tracker.providers.base import BaseProvider, RepositoryFetch
from release_tracker.providers.errors import ResponseParseError
from release_tracker.providers.fanout import PageFetch, fetch_all_pages
from release_tracker.providers.platform.constants import (
    GITLAB_API_BASE_URL,
    GITLAB_MAX_QPS,
    GITLAB_WEB_BASE_URL,
    PROVIDER_GITLAB,
    RELEASES_PER_PAGE,
)
from release_tracker.providers.platform.helpers import (
    parse_timestamp,
    resolve_total_pages,
)
from release_tracker.providers.tag_filter import should_skip_tag


@dataclass(frozen=True)
class GitLabProject:
    """A starred project: numeric id plus ``namespace/name`` path."""

    id: int
    path: str


class GitLabProvider(BaseProvider[GitLabProject]):
    """Release provider for gitlab.com.

    GitLab exposes releases only; release tag names still pass the moving
    tag filter.
    """

    platform = PROVIDER_GITLAB
    max_qps = GITLAB_MAX_QPS

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Private-Token": self._token}

    def _repository_key(self, repository: GitLabProject) -> str:
        return repository.path

    def _list_repositories(self) -> list[GitLabProject]:
        username = self._fetch_username()
        self._log.debug("gitlab_user_resolved", username=username)

        pages = fetch_all_pages(
            lambda page: self._fetch_starred_page(username, page),
            self._policy,
            log=self._log,
        )
        if pages.failed_pages:
            self._metrics.record_failed_pages(self._name, len(pages.failed_pages))

        projects: list[GitLabProject] = []
        seen: set[int] = set()
        for project in pages.items:
            if project.id in seen:
                continue
            seen.add(project.id)
            projects.append(project)
        return projects

    def _fetch_username(self) -> str:
        url = f"{GITLAB_API_BASE_URL}/user"
        data = self._get_json(url)
        username = data.get("username") if isinstance(data, dict) else None
        if not isinstance(username, str) or not username:
            msg = "Current user response has no username"
            raise ResponseParseError(msg, provider=self._name, url=url)
        return username

    def _fetch_starred_page(self, username: str, page: int) -> PageFetch[GitLabProject]:
        per_page = self._policy.per_page
        url = (
            f"{GITLAB_API_BASE_URL}/users/{quote(username, safe='')}/starred_projects"
            f"?per_page={per_page}&page={page}"
        )
        result = self._get(url)
        data = self._decode_json(result, url)
        if not isinstance(data, list):
            msg = "Expected array of starred projects"
            raise ResponseParseError(msg, provider=self._name, url=url)

        projects = [
            GitLabProject(
                id=item["id"],
                path=item.get("path_with_namespace") or str(item["id"]),
            )
            for item in data
            if isinstance(item, dict) and isinstance(item.get("id"), int)
        ]
        return PageFetch(
            items=projects,
            total_pages=resolve_total_pages(result, per_page) if page == 1 else None,
            has_more=len(data) >= per_page,
        )

    def _fetch_repository(self, repository: GitLabProject) -> RepositoryFetch:
        url = (
            f"{GITLAB_API_BASE_URL}/projects/{repository.id}/releases"
            f"?per_page={RELEASES_PER_PAGE}"
        )
        data = self._get_json(url)
        if not isinstance(data, list):
            msg = "Expected array of releases"
            raise ResponseParseError(msg, provider=self._name, url=url)

        releases: list[ReleaseEvent] = []
        for release in data:
            if not isinstance(release, dict):
                continue
            event = self._parse_release(release, repository)
            if event is None:
                continue
            if should_skip_tag(event.label):
                self._log.debug(
                    "release_tag_skipped",
                    repository=repository.path,
                    tag=event.label,
                )
                continue
            releases.append(event)

        return RepositoryFetch(releases=releases)

    def _parse_release(
        self,
        release: dict[str, Any],
        repository: GitLabProject,
    ) -> ReleaseEvent | None:
        tag_name = release.get("tag_name")
        if not tag_name or release.get("upcoming_release"):
            return None

        published = release.get("released_at") or release.get("created_at")
        if not published:
            return None
        try:
            timestamp = parse_timestamp(published)
        except ValueError:
            return None

        links = release.get("_links")
        url = links.get("self") if isinstance(links, dict) else None
        url = url or release.get("web_url")

        return ReleaseEvent(
            repository=repository.path,
            label=tag_name,
            published_at=timestamp,
            url=url or f"{GITLAB_WEB_BASE_URL}/{repository.path}/-/releases/{tag_name}",
            notes=release.get("description") or "",
            provider=self._name,
        )
