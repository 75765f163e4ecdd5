"""Forgejo/Gitea provider; Codeberg is the instance at codeberg.org."""

from typing import Any
from urllib.parse import quote

from release_tracker.fetch.client import HttpFetcher
from release_tracker.models import ParsedRepoRef, ReleaseEvent
from release_tracker.providers.base import BaseProvider, RepositoryFetch
from release_tracker.providers.errors import (
    InvalidRepositoryError,
    ResponseParseError,
)
from release_tracker.providers.fanout import FanOutPolicy, PageFetch, fetch_all_pages
from release_tracker.providers.platform.constants import (
    CODEBERG_BASE_URL,
    FORGEJO_API_PREFIX,
    FORGEJO_MAX_QPS,
    PROVIDER_CODEBERG,
    PROVIDER_FORGEJO,
    RELEASES_PER_PAGE,
)
from release_tracker.providers.platform.helpers import (
    parse_timestamp,
    resolve_total_pages,
)
from release_tracker.providers.platform.rate_limiter import RateLimiterProtocol
from release_tracker.providers.tag_filter import should_skip_tag


class ForgejoProvider(BaseProvider[ParsedRepoRef]):
    """Release provider for one Forgejo (or Gitea) instance.

    Each configured instance is its own provider, named after the instance.
    """

    platform = PROVIDER_FORGEJO
    max_qps = FORGEJO_MAX_QPS

    def __init__(  # noqa: PLR0913
        self,
        http_client: HttpFetcher,
        *,
        name: str,
        base_url: str,
        token: str | None,
        run_id: str = "",
        policy: FanOutPolicy | None = None,
        rate_limiter: RateLimiterProtocol | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            http_client: HTTP client for API calls.
            name: Instance name used as the provider name.
            base_url: Instance root URL (trailing slashes are ignored).
            token: Access token; None disables the provider.
            run_id: Run identifier for logging.
            policy: Fan-out bounds.
            rate_limiter: Optional rate limiter for dependency injection.
        """
        super().__init__(
            http_client,
            token=token,
            name=name,
            run_id=run_id,
            policy=policy,
            rate_limiter=rate_limiter,
        )
        self._base_url = base_url.rstrip("/")

    @classmethod
    def codeberg(
        cls,
        http_client: HttpFetcher,
        *,
        token: str | None,
        run_id: str = "",
        policy: FanOutPolicy | None = None,
    ) -> "ForgejoProvider":
        """Build the provider for codeberg.org."""
        return cls(
            http_client,
            name=PROVIDER_CODEBERG,
            base_url=CODEBERG_BASE_URL,
            token=token,
            run_id=run_id,
            policy=policy,
        )

    @property
    def base_url(self) -> str:
        """Get the normalized instance URL."""
        return self._base_url

    @property
    def api_url(self) -> str:
        """Get the API root of the instance."""
        return f"{self._base_url}{FORGEJO_API_PREFIX}"

    def _repository_key(self, repository: ParsedRepoRef) -> str:
        return repository.full_name

    def _list_repositories(self) -> list[ParsedRepoRef]:
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
            if ref.full_name not in seen:
                seen.add(ref.full_name)
                repositories.append(ref)
        return repositories

    def _fetch_starred_page(self, page: int) -> PageFetch[str]:
        per_page = self._policy.per_page
        url = f"{self.api_url}/user/starred?limit={per_page}&page={page}"
        result = self._get(url)
        data = self._decode_json(result, url)
        if not isinstance(data, list):
            msg = "Expected array of starred repositories"
            raise ResponseParseError(msg, provider=self._name, url=url)

        names = [
            item["full_name"]
            for item in data
            if isinstance(item, dict) and isinstance(item.get("full_name"), str)
        ]
        return PageFetch(
            items=names,
            total_pages=resolve_total_pages(result, per_page) if page == 1 else None,
            has_more=len(data) >= per_page,
        )

    def _fetch_repository(self, repository: ParsedRepoRef) -> RepositoryFetch:
        owner = quote(repository.owner, safe="")
        name = quote(repository.name, safe="")
        base = f"{self.api_url}/repos/{owner}/{name}/releases"

        def fetch_page(page: int) -> PageFetch[dict[str, Any]]:
            url = f"{base}?limit={RELEASES_PER_PAGE}&page={page}"
            data = self._get_json(url)
            if not isinstance(data, list):
                msg = "Expected array of releases"
                raise ResponseParseError(msg, provider=self._name, url=url)
            items = [item for item in data if isinstance(item, dict)]
            return PageFetch(items=items, has_more=len(data) >= RELEASES_PER_PAGE)

        pages = fetch_all_pages(fetch_page, self._policy, log=self._log)

        fetched = RepositoryFetch()
        if pages.failed_pages:
            fetched.errors.append(f"release pages failed: {pages.failed_pages}")

        for release in pages.items:
            event = self._parse_release(release, repository)
            if event is None:
                continue
            if should_skip_tag(event.label):
                self._log.debug(
                    "release_tag_skipped",
                    repository=repository.full_name,
                    tag=event.label,
                )
                continue
            fetched.releases.append(event)
        return fetched

    def _parse_release(
        self,
        release: dict[str, Any],
        repository: ParsedRepoRef,
    ) -> ReleaseEvent | None:
        tag_name = release.get("tag_name")
        published = release.get("published_at") or release.get("created_at")
        if release.get("draft") or not tag_name or not published:
            return None
        try:
            timestamp = parse_timestamp(published)
        except ValueError:
            return None

        return ReleaseEvent(
            repository=repository.full_name,
            label=tag_name,
            published_at=timestamp,
            url=release.get("html_url")
            or f"{self._base_url}/{repository.full_name}/releases/tag/{tag_name}",
            notes=release.get("body") or "",
            provider=self._name,
        )
