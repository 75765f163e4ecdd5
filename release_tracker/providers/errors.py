"""Error types for the provider framework."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ProviderErrorClass(str, Enum):
    """Classification of provider errors.

    - FETCH: HTTP/network errors during fetch
    - PARSE: Errors parsing response content
    - AUTH: Credentials rejected (401/403)
    - GRAPHQL: GraphQL response carried a top-level errors array
    - CONFIG: Provider is misconfigured
    """

    FETCH = "FETCH"
    PARSE = "PARSE"
    AUTH = "AUTH"
    GRAPHQL = "GRAPHQL"
    CONFIG = "CONFIG"


class ProviderError(Exception):
    """Base exception for provider errors.

    Provides structured error information for logging and result reporting.
    """

    def __init__(
        self,
        error_class: ProviderErrorClass,
        message: str,
        provider: str | None = None,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize the provider error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            provider: Name of the provider that failed.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.provider = provider
        self.details = details or {}

    def to_dict(
        self,
    ) -> dict[str, str | int | bool | None | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "provider": self.provider,
            "details": self.details,
        }


class AuthenticationError(ProviderError):
    """Credentials were rejected while enumerating repositories."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        hint: str | None = None,
    ) -> None:
        """Initialize the authentication error.

        Args:
            provider: Name of the provider.
            status_code: HTTP status returned by the platform.
            hint: Remediation hint shown to the user.
        """
        message = f"Authentication failed (HTTP {status_code})"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(
            error_class=ProviderErrorClass.AUTH,
            message=message,
            provider=provider,
            details={"status_code": status_code, "hint": hint},
        )
        self.status_code = status_code
        self.hint = hint


class ResponseParseError(ProviderError):
    """Response body could not be decoded or had an unexpected shape."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize the parse error.

        Args:
            message: Human-readable error message.
            provider: Name of the provider.
            url: URL whose response failed to parse.
        """
        details: dict[str, str | int | bool | None] = {}
        if url is not None:
            details["url"] = url
        super().__init__(
            error_class=ProviderErrorClass.PARSE,
            message=message,
            provider=provider,
            details=details,
        )
        self.url = url


class GraphQLQueryError(ProviderError):
    """A GraphQL response carried a top-level ``errors`` array.

    Treated as a parse-class failure; no partial data is extracted.
    """

    def __init__(self, messages: list[str], provider: str | None = None) -> None:
        """Initialize the GraphQL error.

        Args:
            messages: Error messages reported by the server.
            provider: Name of the provider.
        """
        summary = "; ".join(messages[:3]) or "unknown error"
        super().__init__(
            error_class=ProviderErrorClass.GRAPHQL,
            message=f"GraphQL query failed: {summary}",
            provider=provider,
            details={"error_count": len(messages)},
        )
        self.messages = messages


class InvalidRepositoryError(ProviderError):
    """Repository identifier cannot be split into owner and name."""

    def __init__(self, identifier: str, provider: str | None = None) -> None:
        """Initialize the error.

        Args:
            identifier: The malformed identifier.
            provider: Name of the provider.
        """
        super().__init__(
            error_class=ProviderErrorClass.PARSE,
            message=f"Invalid repository identifier: {identifier!r}",
            provider=provider,
            details={"identifier": identifier},
        )
        self.identifier = identifier


class ErrorRecord(BaseModel):
    """Serializable error record attached to a ProviderResult."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: ProviderErrorClass = Field(description="Error classification")
    message: Annotated[str, Field(min_length=1, description="Error message")]
    provider: str | None = Field(default=None, description="Provider name")
    details: dict[str, str | int | bool | None] = Field(
        default_factory=dict, description="Additional error details"
    )

    @classmethod
    def from_exception(cls, error: ProviderError) -> "ErrorRecord":
        """Create an ErrorRecord from a ProviderError exception.

        Args:
            error: The exception to convert.

        Returns:
            ErrorRecord instance.
        """
        return cls(
            error_class=error.error_class,
            message=error.message,
            provider=error.provider,
            details=error.details,
        )

    @classmethod
    def from_unexpected(cls, provider: str, error: BaseException) -> "ErrorRecord":
        """Create a FETCH-class record for an exception outside the hierarchy.

        Args:
            provider: Name of the provider.
            error: The unexpected exception.

        Returns:
            ErrorRecord instance.
        """
        message = str(error) or type(error).__name__
        return cls(
            error_class=ProviderErrorClass.FETCH,
            message=f"Unexpected error: {message}",
            provider=provider,
            details={"exception_type": type(error).__name__},
        )

    def summary(self) -> str:
        """Get a one-line summary for console output."""
        if self.provider:
            return f"{self.provider}: {self.message}"
        return self.message
