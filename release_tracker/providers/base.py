"""Provider capability contract and the shared provider template."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, Protocol, TypeVar, runtime_checkable

import structlog

from release_tracker.fetch.client import HttpFetcher
from release_tracker.fetch.models import FetchResult
from release_tracker.fetch.redact import redact_url
from release_tracker.models import ReleaseEvent, sort_events_desc
from release_tracker.providers.errors import (
    AuthenticationError,
    GraphQLQueryError,
    ProviderError,
    ProviderErrorClass,
    ResponseParseError,
)
from release_tracker.providers.fanout import (
    FanOutPolicy,
    resolve_worker_count,
    run_fan_out,
)
from release_tracker.providers.metrics import ProviderMetrics
from release_tracker.providers.platform.constants import AUTH_ERROR_HINTS
from release_tracker.providers.platform.helpers import (
    build_bearer_auth_header,
    is_auth_error,
)
from release_tracker.providers.platform.rate_limiter import (
    RateLimiterProtocol,
    get_platform_rate_limiter,
)
from release_tracker.providers.reconcile import reconcile_tags
from release_tracker.providers.state_machine import ProviderStateMachine


logger = structlog.get_logger()

R = TypeVar("R")


@runtime_checkable
class ReleaseProvider(Protocol):
    """Capability every hosting-platform integration satisfies.

    ``fetch_releases`` returns events sorted most recent first. A provider
    without usable credentials returns an empty list; hard failures raise
    ProviderError.
    """

    @property
    def name(self) -> str:
        """Short provider name used in events and logs."""
        ...

    def fetch_releases(self) -> list[ReleaseEvent]:
        """Fetch release events for every tracked repository."""
        ...


@dataclass
class RepositoryFetch:
    """Releases and raw tags gathered for one repository.

    ``errors`` holds partial failures (e.g. tags failed while releases
    succeeded); whatever was gathered is still used.
    """

    releases: list[ReleaseEvent] = field(default_factory=list)
    tags: list[ReleaseEvent] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class BaseProvider(ABC, Generic[R]):
    """Template shared by all platform providers.

    Subclasses enumerate repositories and fetch one repository at a time;
    this class fans the per-repository work out on a bounded pool, collects
    the results, runs tag reconciliation and sorts the output.
    """

    platform: ClassVar[str]
    max_qps: ClassVar[float]

    def __init__(  # noqa: PLR0913
        self,
        http_client: HttpFetcher,
        *,
        token: str | None,
        name: str | None = None,
        run_id: str = "",
        policy: FanOutPolicy | None = None,
        rate_limiter: RateLimiterProtocol | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            http_client: HTTP client for API calls.
            token: Access token; None disables the provider.
            name: Provider name (defaults to the platform name).
            run_id: Run identifier for logging.
            policy: Fan-out bounds.
            rate_limiter: Optional rate limiter for dependency injection.
        """
        self._http = http_client
        self._token = token or None
        self._name = name or self.platform
        self._run_id = run_id
        self._policy = policy or FanOutPolicy()
        self._rate_limiter = rate_limiter or get_platform_rate_limiter(
            self._name, self.max_qps
        )
        self._metrics = ProviderMetrics.get_instance()
        self._log = logger.bind(
            component="provider",
            provider=self._name,
            run_id=run_id,
        )

    @property
    def name(self) -> str:
        """Short provider name used in events and logs."""
        return self._name

    @property
    def has_credentials(self) -> bool:
        """Check whether the provider has what it needs to run."""
        return self._token is not None

    def fetch_releases(self) -> list[ReleaseEvent]:
        """Fetch, reconcile and sort release events.

        Returns:
            Events sorted most recent first.

        Raises:
            ProviderError: If repositories cannot be enumerated.
        """
        state_machine = ProviderStateMachine(self._name, self._run_id)

        if not self.has_credentials:
            self._log.info("provider_skipped", reason="no_credentials")
            state_machine.to_done()
            return []

        try:
            state_machine.to_listing()
            repositories = self._list_repositories()
            self._log.info("repositories_listed", repository_count=len(repositories))

            state_machine.to_fetching()
            releases, tags, failed = self._fetch_all(repositories)

            state_machine.to_reconciling()
            reconciled = reconcile_tags(releases, tags)
            events = sort_events_desc(reconciled.events)
        except ProviderError as e:
            if e.provider is None:
                e.provider = self._name
            state_machine.to_failed()
            self._metrics.record_error(self._name, e.error_class.value.lower())
            self._log.warning("provider_fetch_failed", error=e.to_dict())
            raise
        except Exception:
            state_machine.to_failed()
            raise

        state_machine.to_done()
        self._metrics.record_events(self._name, len(events))
        self._log.info(
            "provider_fetch_complete",
            repository_count=len(repositories),
            failed_repositories=failed,
            releases=reconciled.releases_kept,
            tags_seen=reconciled.tags_seen,
            tags_filtered=reconciled.tags_filtered,
            tags_duplicate=reconciled.tags_duplicate,
            tags_added=reconciled.tags_added,
            event_count=len(events),
        )
        return events

    def _fetch_all(
        self, repositories: Sequence[R]
    ) -> tuple[list[ReleaseEvent], list[ReleaseEvent], int]:
        """Fan out one task per repository and concatenate the results.

        Returns:
            Tuple of (releases, tags, failed task count).
        """
        outcomes = run_fan_out(
            repositories,
            self._fetch_repository,
            max_workers=resolve_worker_count(self._policy, len(repositories)),
            key=self._repository_key,
            log=self._log,
        )

        releases: list[ReleaseEvent] = []
        tags: list[ReleaseEvent] = []
        failed = 0

        for outcome in outcomes:
            if not outcome.ok or outcome.value is None:
                failed += 1
                self._log.warning(
                    "repository_fetch_failed",
                    repository=outcome.key,
                    error=outcome.error,
                )
                continue

            fetched = outcome.value
            for error in fetched.errors:
                self._log.warning(
                    "repository_partial_failure",
                    repository=outcome.key,
                    error=error,
                )
            releases.extend(fetched.releases)
            tags.extend(fetched.tags)

        if failed:
            self._metrics.record_failed_tasks(self._name, failed)

        return releases, tags, failed

    @abstractmethod
    def _list_repositories(self) -> Sequence[R]:
        """Enumerate the repositories to check.

        Raises:
            ProviderError: If the listing cannot be obtained.
        """

    @abstractmethod
    def _fetch_repository(self, repository: R) -> RepositoryFetch:
        """Fetch releases and/or tags for one repository."""

    def _repository_key(self, repository: R) -> str:
        """Label a repository for logs."""
        return str(repository)

    def _auth_headers(self) -> dict[str, str]:
        """Headers that authenticate every request."""
        return build_bearer_auth_header(self._token)

    def _get(self, url: str, headers: dict[str, str] | None = None) -> FetchResult:
        """GET a URL through the rate limiter.

        Raises:
            AuthenticationError: On 401/403.
            ProviderError: On any other failure.
        """
        self._rate_limiter.acquire()
        result = self._http.fetch(
            source_id=self._name,
            url=url,
            extra_headers={**self._auth_headers(), **(headers or {})},
        )
        self._metrics.record_api_call(self._name)
        self._raise_for_result(result, url)
        return result

    def _get_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """GET a URL and decode the JSON body."""
        return self._decode_json(self._get(url, headers), url)

    def _post_graphql(
        self,
        url: str,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` member.

        Raises:
            GraphQLQueryError: If the response carries top-level errors.
            ResponseParseError: If the response has no data object.
        """
        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        self._rate_limiter.acquire()
        result = self._http.post_json(
            source_id=self._name,
            url=url,
            payload=payload,
            extra_headers=self._auth_headers(),
        )
        self._metrics.record_api_call(self._name)
        self._raise_for_result(result, url)

        body = self._decode_json(result, url)
        if not isinstance(body, dict):
            msg = "GraphQL response is not an object"
            raise ResponseParseError(msg, provider=self._name, url=url)

        errors = body.get("errors")
        if errors:
            messages = [
                str(error.get("message", error))
                if isinstance(error, dict)
                else str(error)
                for error in errors
            ]
            raise GraphQLQueryError(messages, provider=self._name)

        data = body.get("data")
        if not isinstance(data, dict):
            msg = "GraphQL response has no data"
            raise ResponseParseError(msg, provider=self._name, url=url)
        return data

    def _decode_json(self, result: FetchResult, url: str) -> Any:
        try:
            return result.json()
        except ValueError as e:
            msg = f"Invalid JSON response: {e}"
            raise ResponseParseError(msg, provider=self._name, url=url) from e

    def _raise_for_result(self, result: FetchResult, url: str) -> None:
        if result.is_success:
            return

        if is_auth_error(result):
            raise AuthenticationError(
                self._name,
                result.status_code,
                AUTH_ERROR_HINTS.get(self.platform),
            )

        message = (
            result.error.message
            if result.error
            else f"Unexpected status ({result.status_code})"
        )
        safe_url = redact_url(url)
        raise ProviderError(
            error_class=ProviderErrorClass.FETCH,
            message=f"{message} for {safe_url}",
            provider=self._name,
            details={"status_code": result.status_code, "url": safe_url},
        )
