"""Tests for shared platform helpers."""

import pytest

from release_tracker.providers.platform.helpers import (
    build_bearer_auth_header,
    is_auth_error,
    parse_link_last_page,
    parse_timestamp,
    resolve_total_pages,
)
from tests.helpers.events import error_result, json_result


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2024-05-01T00:00:00Z", 1714521600),
            ("2024-05-01T00:00:00.123456Z", 1714521600),
            ("2024-05-01T02:00:00+02:00", 1714521600),
            ("2024-05-01T00:00:00", 1714521600),
            ("1714521600", 1714521600),
            (1714521600, 1714521600),
            ("1970-01-01T00:00:00Z", 0),
        ],
    )
    def test_valid(self, value: str | int, expected: int) -> None:
        """Test accepted timestamp forms."""
        assert parse_timestamp(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "yesterday", "2024-13-45"])
    def test_invalid(self, value: str) -> None:
        """Test rejected timestamp forms."""
        with pytest.raises(ValueError):
            parse_timestamp(value)

    def test_bool_rejected(self) -> None:
        """Test that booleans are not treated as integers."""
        with pytest.raises(ValueError):
            parse_timestamp(True)  # type: ignore[arg-type]


class TestLinkHeader:
    """Tests for Link header parsing."""

    def test_last_page(self) -> None:
        """Test extracting the last page."""
        header = (
            '<https://api.github.com/user/starred?page=2>; rel="next", '
            '<https://api.github.com/user/starred?per_page=100&page=34>; rel="last"'
        )

        assert parse_link_last_page(header) == 34

    def test_no_last_relation(self) -> None:
        """Test a header without a last link."""
        assert parse_link_last_page('<https://x/?page=1>; rel="prev"') is None
        assert parse_link_last_page(None) is None


class TestResolveTotalPages:
    """Tests for resolve_total_pages."""

    def test_link_header_wins(self) -> None:
        """Test that the Link header takes priority."""
        result = json_result(
            [],
            headers={
                "Link": '<https://x/?page=5>; rel="last"',
                "X-Total-Pages": "9",
            },
        )

        assert resolve_total_pages(result, 100) == 5

    def test_link_without_next_is_last_page(self) -> None:
        """Test that a Link header with only prev/first means one page."""
        result = json_result([], headers={"Link": '<https://x/?page=1>; rel="first"'})

        assert resolve_total_pages(result, 100) == 1

    def test_total_pages_header(self) -> None:
        """Test X-Total-Pages."""
        result = json_result([], headers={"X-Total-Pages": "3"})

        assert resolve_total_pages(result, 100) == 3

    def test_total_count_header(self) -> None:
        """Test X-Total-Count divided by page size."""
        result = json_result([], headers={"X-Total-Count": "201"})

        assert resolve_total_pages(result, 100) == 3

    def test_unknown(self) -> None:
        """Test a response without paging hints."""
        assert resolve_total_pages(json_result([]), 100) is None


class TestAuthHelpers:
    """Tests for auth helpers."""

    def test_is_auth_error(self) -> None:
        """Test 401/403 detection."""
        assert is_auth_error(error_result(401)) is True
        assert is_auth_error(error_result(403)) is True
        assert is_auth_error(error_result(404)) is False
        assert is_auth_error(json_result({})) is False

    def test_quota_exhaustion_is_not_auth_error(self) -> None:
        """Test that GitHub's 403 with no remaining quota is not a bad token."""
        result = error_result(403, headers={"X-RateLimit-Remaining": "0"})

        assert is_auth_error(result) is False

    def test_bearer_header(self) -> None:
        """Test bearer header construction."""
        assert build_bearer_auth_header("abc") == {"Authorization": "Bearer abc"}
        assert build_bearer_auth_header(None) == {}
