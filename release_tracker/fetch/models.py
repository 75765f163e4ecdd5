"""Request outcomes and retry decisions for the fetch layer."""

import json
import random
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Annotated, Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


class FetchErrorClass(str, Enum):
    """Why a request produced no usable body."""

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    AUTH_REJECTED = "AUTH_REJECTED"
    RATE_LIMITED = "RATE_LIMITED"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    UNKNOWN = "UNKNOWN"

    @property
    def transient(self) -> bool:
        """Whether the same request may succeed if sent again."""
        return self in _TRANSIENT

    @classmethod
    def for_response(
        cls, status_code: int, headers: Mapping[str, str]
    ) -> "FetchErrorClass | None":
        """Classify a response status; None means success.

        GitHub signals an exhausted quota with 403 and
        ``x-ratelimit-remaining: 0``; that is rate limiting, not a bad token.
        """
        if httpx.codes.is_success(status_code):
            return None
        if status_code == httpx.codes.TOO_MANY_REQUESTS:
            return cls.RATE_LIMITED
        if status_code == httpx.codes.FORBIDDEN and (
            headers.get("x-ratelimit-remaining") == "0"
        ):
            return cls.RATE_LIMITED
        if status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            return cls.AUTH_REJECTED
        if httpx.codes.is_client_error(status_code):
            return cls.HTTP_4XX
        if httpx.codes.is_server_error(status_code):
            return cls.HTTP_5XX
        return None


_TRANSIENT = frozenset(
    {
        FetchErrorClass.NETWORK_TIMEOUT,
        FetchErrorClass.CONNECTION_ERROR,
        FetchErrorClass.RATE_LIMITED,
        FetchErrorClass.HTTP_5XX,
    }
)


def parse_retry_after(
    headers: Mapping[str, str], now: datetime | None = None
) -> float | None:
    """Seconds the server asked us to wait, if it said.

    Reads ``Retry-After`` (delta seconds or an HTTP date) and falls back to
    ``x-ratelimit-reset`` (epoch seconds) when the quota is exhausted.
    Header names must already be lower-cased.
    """
    now = now or datetime.now(UTC)
    value = headers.get("retry-after")
    if value:
        value = value.strip()
        if value.isdigit():
            return float(value)
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            # "-0000" parses naive; the value is still UTC
            when = when.replace(tzinfo=UTC)
        return max(0.0, (when - now).total_seconds())

    reset = headers.get("x-ratelimit-reset")
    if reset and reset.isdigit() and headers.get("x-ratelimit-remaining") == "0":
        return max(0.0, int(reset) - now.timestamp())
    return None


class FetchError(BaseModel):
    """Classified failure attached to a FetchResult."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass
    message: Annotated[str, Field(min_length=1)]
    status_code: int | None = None
    retry_after: float | None = Field(
        default=None, description="Server-requested wait in seconds"
    )


class FetchResult(BaseModel):
    """What came back from one logical request, after retries.

    ``status_code`` is 0 when no HTTP response was received. Header keys
    are lower-cased.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=0, le=599)
    final_url: Annotated[str, Field(min_length=1)]
    headers: dict[str, str] = Field(default_factory=dict)
    body_bytes: bytes = b""
    error: FetchError | None = None

    @property
    def is_success(self) -> bool:
        """True for a 2xx response that carried no error."""
        return self.error is None and httpx.codes.is_success(self.status_code)

    @property
    def body_size(self) -> int:
        """Size of the body in bytes."""
        return len(self.body_bytes)

    def header(self, name: str) -> str | None:
        """Look up a response header by any casing."""
        return self.headers.get(name.lower())

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.body_bytes)


class RetryPolicy(BaseModel):
    """When and how long to wait before sending a failed request again.

    Backoff doubles per attempt from ``backoff_seconds`` up to
    ``backoff_cap_seconds``, plus up to ``jitter`` of itself. A server
    supplied wait replaces the backoff; when it exceeds
    ``max_retry_after_seconds`` the request is given up instead.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    backoff_seconds: Annotated[float, Field(ge=0.0, le=60.0)] = 1.0
    backoff_cap_seconds: Annotated[float, Field(ge=0.0, le=300.0)] = 30.0
    jitter: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1
    max_retry_after_seconds: Annotated[float, Field(ge=0.0, le=600.0)] = 60.0

    def backoff(self, attempt: int) -> float:
        """Backoff before retry number ``attempt + 1``."""
        delay = min(self.backoff_seconds * 2**attempt, self.backoff_cap_seconds)
        return delay + delay * self.jitter * random.random()  # noqa: S311

    def next_delay(self, error: FetchError, attempt: int) -> float | None:
        """Seconds to wait after ``attempt`` (0-based) failed, or None to stop."""
        if attempt >= self.max_retries or not error.error_class.transient:
            return None
        if error.retry_after is None:
            return self.backoff(attempt)
        if error.retry_after > self.max_retry_after_seconds:
            return None
        return error.retry_after


class ResponseSizeExceededError(Exception):
    """A response body grew past the configured limit."""

    def __init__(self, limit: int, seen: int) -> None:
        super().__init__(f"Response exceeded {limit} bytes (got at least {seen})")
        self.limit = limit
        self.seen = seen
