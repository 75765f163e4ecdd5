"""HTTP client settings, nested under ``fetch:`` in the tracker config."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from release_tracker.fetch.models import RetryPolicy


DEFAULT_USER_AGENT = "release-tracker/1.0"
DEFAULT_MAX_RESPONSE_SIZE_BYTES = 10 * 1024 * 1024


class FetchConfig(BaseModel):
    """Settings shared by every request a run makes.

    The timeout applies per attempt, so one stalled repository only delays
    the fan-out task that asked for it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=200)] = (
        DEFAULT_USER_AGENT
    )
    timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = 30.0
    max_response_size_bytes: Annotated[int, Field(ge=1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
