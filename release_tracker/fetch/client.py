"""HTTP client shared by every provider in a run."""

import time
from types import TracebackType
from typing import Any

import httpx
import structlog

from release_tracker.fetch.config import FetchConfig
from release_tracker.fetch.metrics import FetchMetrics
from release_tracker.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    ResponseSizeExceededError,
    parse_retry_after,
)
from release_tracker.fetch.redact import redact_headers, redact_url


logger = structlog.get_logger()

CHUNK_SIZE = 16 * 1024


class HttpFetcher:
    """GET and JSON POST over one pooled ``httpx.Client``.

    Every call returns a FetchResult; HTTP and network failures are
    classified into ``FetchResult.error`` rather than raised. Transient
    failures are retried according to the configured RetryPolicy.
    Bodies are streamed and cut off at ``max_response_size_bytes``.

    Safe to share across threads. Close it (or use it as a context
    manager) to release pooled connections.
    """

    def __init__(
        self,
        config: FetchConfig,
        run_id: str,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: Fetch settings.
            run_id: Run identifier for logging.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._config = config
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch", run_id=run_id)
        self._client = httpx.Client(
            headers={
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
            timeout=config.timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close pooled connections."""
        self._client.close()

    def fetch(
        self,
        source_id: str,
        url: str,
        extra_headers: dict[str, str] | None = None,
    ) -> FetchResult:
        """GET ``url``.

        Args:
            source_id: Who is asking (provider name, for logs).
            url: Absolute URL.
            extra_headers: Per-request headers such as authentication.
        """
        return self._send("GET", source_id, url, extra_headers or {}, None)

    def post_json(
        self,
        source_id: str,
        url: str,
        payload: dict[str, Any],
        extra_headers: dict[str, str] | None = None,
    ) -> FetchResult:
        """POST ``payload`` as a JSON body (GraphQL endpoints)."""
        return self._send("POST", source_id, url, extra_headers or {}, payload)

    def _send(
        self,
        method: str,
        source_id: str,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any] | None,
    ) -> FetchResult:
        host = httpx.URL(url).host
        log = self._log.bind(
            source_id=source_id,
            method=method,
            url=redact_url(url),
            headers=redact_headers(headers),
        )
        policy = self._config.retry_policy
        started = time.perf_counter()

        attempt = 0
        while True:
            result = self._attempt(method, url, host, headers, payload, log)
            if result.error is None:
                break
            delay = policy.next_delay(result.error, attempt)
            if delay is None:
                self._metrics.record_failure(host, result.error.error_class)
                break
            attempt += 1
            self._metrics.record_retry()
            log.info(
                "fetch_retry_scheduled",
                attempt=attempt,
                delay_seconds=round(delay, 3),
                error_class=result.error.error_class.value,
                status_code=result.status_code,
            )
            time.sleep(delay)

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._metrics.record_elapsed(elapsed_ms)
        log.debug(
            "fetch_complete",
            status_code=result.status_code,
            bytes=result.body_size,
            attempts=attempt + 1,
            duration_ms=round(elapsed_ms, 2),
            error_class=result.error.error_class.value if result.error else None,
        )
        return result

    def _attempt(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        host: str,
        headers: dict[str, str],
        payload: dict[str, Any] | None,
        log: structlog.stdlib.BoundLogger,
    ) -> FetchResult:
        try:
            with self._client.stream(
                method, url, headers=headers, json=payload
            ) as response:
                return self._read(response, host)
        except ResponseSizeExceededError as e:
            return _no_response(url, FetchErrorClass.RESPONSE_SIZE_EXCEEDED, str(e))
        except httpx.TimeoutException as e:
            log.debug("fetch_timeout", error=str(e))
            return _no_response(
                url, FetchErrorClass.NETWORK_TIMEOUT, f"Request timed out: {e}"
            )
        except httpx.TransportError as e:
            log.debug("fetch_transport_error", error=str(e))
            return _no_response(
                url, FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {e}"
            )
        except httpx.HTTPError as e:
            log.warning("fetch_unexpected_error", error=str(e))
            return _no_response(url, FetchErrorClass.UNKNOWN, str(e) or repr(e))

    def _read(self, response: httpx.Response, host: str) -> FetchResult:
        """Drain a streamed response within the size limit."""
        limit = self._config.max_response_size_bytes
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > limit:
            raise ResponseSizeExceededError(limit, int(declared))

        body = bytearray()
        for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > limit:
                raise ResponseSizeExceededError(limit, len(body))

        headers = {name.lower(): value for name, value in response.headers.items()}
        self._metrics.record_response(host, response.status_code, len(body))

        error = None
        error_class = FetchErrorClass.for_response(response.status_code, headers)
        if error_class is not None:
            error = FetchError(
                error_class=error_class,
                message=f"HTTP {response.status_code} {response.reason_phrase}".strip(),
                status_code=response.status_code,
                retry_after=parse_retry_after(headers),
            )

        return FetchResult(
            status_code=response.status_code,
            final_url=str(response.url),
            headers=headers,
            body_bytes=bytes(body),
            error=error,
        )


def _no_response(url: str, error_class: FetchErrorClass, message: str) -> FetchResult:
    return FetchResult(
        status_code=0,
        final_url=url,
        error=FetchError(error_class=error_class, message=message),
    )
