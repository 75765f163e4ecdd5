"""Tests for the Forgejo/Codeberg provider."""

from unittest.mock import MagicMock

import pytest

from release_tracker.providers.errors import AuthenticationError
from release_tracker.providers.metrics import ProviderMetrics
from release_tracker.providers.platform.forgejo import ForgejoProvider
from release_tracker.providers.platform.rate_limiter import (
    reset_platform_rate_limiters,
)
from tests.helpers.events import error_result, json_result
from tests.helpers.http import make_http


MAY_1 = "2024-05-01T00:00:00+02:00"
MAY_1_TS = 1714514400
RELEASE_URL = "https://git.example.org/o/r/releases/tag/v1.0.0"


def _provider(
    http: MagicMock, base_url: str = "https://git.example.org/"
) -> ForgejoProvider:
    return ForgejoProvider(
        http,
        name="myforge",
        base_url=base_url,
        token="forgejo-token",
        run_id="test-run",
        rate_limiter=MagicMock(),
    )


class TestForgejoProvider:
    """Tests for ForgejoProvider."""

    def setup_method(self) -> None:
        """Reset shared singletons."""
        ProviderMetrics.reset()
        reset_platform_rate_limiters()

    def test_base_url_normalized(self) -> None:
        """Test that trailing slashes are stripped."""
        provider = _provider(MagicMock(), base_url="https://git.example.org///")

        assert provider.base_url == "https://git.example.org"
        assert provider.api_url == "https://git.example.org/api/v1"
        assert provider.name == "myforge"

    def test_codeberg_factory(self) -> None:
        """Test the codeberg.org preset."""
        provider = ForgejoProvider.codeberg(MagicMock(), token="t")

        assert provider.name == "codeberg"
        assert provider.base_url == "https://codeberg.org"

    def test_releases_filtered_and_attributed(self) -> None:
        """Test that drafts and noise tags are dropped."""
        http = make_http(
            routes={
                "/api/v1/user/starred": json_result([{"full_name": "o/r"}]),
                "/api/v1/repos/o/r/releases": json_result(
                    [
                        {
                            "tag_name": "v1.0.0",
                            "published_at": MAY_1,
                            "html_url": RELEASE_URL,
                            "body": "notes",
                        },
                        {"tag_name": "v1.1.0", "draft": True, "published_at": MAY_1},
                        {"tag_name": "v1.1.0-rc.1", "published_at": MAY_1},
                        {"tag_name": "v0.9.0", "created_at": "2024-04-01T00:00:00Z"},
                    ]
                ),
            }
        )

        events = _provider(http).fetch_releases()

        assert [e.label for e in events] == ["v1.0.0", "v0.9.0"]
        assert events[0].published_at == MAY_1_TS
        assert events[0].provider == "myforge"
        assert events[0].notes == "notes"
        assert events[1].url == "https://git.example.org/o/r/releases/tag/v0.9.0"

    def test_requests_go_to_instance(self) -> None:
        """Test that every request targets the configured instance."""
        http = make_http(routes={"/api/v1/user/starred": json_result([])})

        _provider(http).fetch_releases()

        url = http.fetch.call_args.kwargs["url"]
        assert url.startswith("https://git.example.org/api/v1/user/starred?")
        headers = http.fetch.call_args.kwargs["extra_headers"]
        assert headers["Authorization"] == "Bearer forgejo-token"

    def test_auth_failure(self) -> None:
        """Test that a rejected token fails the provider."""
        http = make_http(routes={"/api/v1/user/starred": error_result(403)})

        with pytest.raises(AuthenticationError) as exc_info:
            _provider(http).fetch_releases()

        assert exc_info.value.provider == "myforge"

    def test_no_token_skips(self) -> None:
        """Test that a tokenless instance returns no events."""
        http = MagicMock()
        provider = ForgejoProvider(
            http, name="myforge", base_url="https://git.example.org", token=None
        )

        assert provider.fetch_releases() == []
        http.fetch.assert_not_called()
