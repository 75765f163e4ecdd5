"""Tests for the command line interface."""

import time
from pathlib import Path
from unittest.mock import patch

import structlog
from click.testing import CliRunner
from structlog.testing import capture_logs

from release_tracker import __version__
from release_tracker.cli.main import FAILURE_MESSAGE, cli
from release_tracker.config.schemas import FeedConfig
from release_tracker.feed.atom import AtomFeedRenderer
from release_tracker.providers.errors import AuthenticationError
from release_tracker.providers.metrics import ProviderMetrics
from tests.helpers.events import make_event
from tests.helpers.providers import StubProvider
from tests.helpers.time import DAY_SECONDS


BUILD_PROVIDERS = "release_tracker.cli.main.build_providers"
CONFIGURE_LOGGING = "release_tracker.cli.main.configure_logging"


def _config(tmp_path: Path, content: str = "age_limit_days: 30\n") -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def _days_ago(days: int) -> int:
    return int(time.time()) - days * DAY_SECONDS


class TestRunCommand:
    """Tests for the run command."""

    def setup_method(self) -> None:
        """Reset metrics."""
        ProviderMetrics.reset()

    def test_writes_feed(self, tmp_path: Path) -> None:
        """Test a successful run."""
        output = tmp_path / "releases.xml"
        provider = StubProvider("github", [make_event("a/b", "v1.0.0", _days_ago(1))])

        with patch(BUILD_PROVIDERS, return_value=[provider]):
            result = CliRunner().invoke(
                cli, ["run", "-c", str(_config(tmp_path)), "-o", str(output)]
            )

        assert result.exit_code == 0, result.output
        assert "✓ github: 1 events" in result.output
        assert "Total: 1 events" in result.output
        assert "<title>a/b - v1.0.0</title>" in output.read_text(encoding="utf-8")

    def test_provider_failure_still_writes_feed(self, tmp_path: Path) -> None:
        """Test that the feed is written before exiting non-zero."""
        output = tmp_path / "releases.xml"
        providers = [
            StubProvider("github", error=AuthenticationError("github", 401)),
            StubProvider("gitlab", [make_event("g/p", "v2.0.0", _days_ago(2))]),
        ]

        with patch(BUILD_PROVIDERS, return_value=providers):
            result = CliRunner().invoke(
                cli, ["run", "-c", str(_config(tmp_path)), "-o", str(output)]
            )

        assert result.exit_code == 1
        assert FAILURE_MESSAGE in result.output
        assert "✗ github: Authentication failed (HTTP 401)" in result.output
        assert "g/p - v2.0.0" in output.read_text(encoding="utf-8")

    def test_dry_run_prints_feed(self, tmp_path: Path) -> None:
        """Test that --dry-run writes nothing."""
        output = tmp_path / "releases.xml"
        provider = StubProvider("github", [make_event("a/b", "v1.0.0", _days_ago(1))])

        with patch(BUILD_PROVIDERS, return_value=[provider]):
            result = CliRunner().invoke(
                cli,
                ["run", "-c", str(_config(tmp_path)), "-o", str(output), "--dry-run"],
            )

        assert result.exit_code == 0, result.output
        assert "<feed xmlns" in result.output
        assert not output.exists()

    def test_age_days_override(self, tmp_path: Path) -> None:
        """Test that --age-days narrows the window."""
        output = tmp_path / "releases.xml"
        provider = StubProvider(
            "github",
            [
                make_event("a/b", "v2.0.0", _days_ago(1)),
                make_event("a/b", "v1.0.0", _days_ago(10)),
            ],
        )

        with patch(BUILD_PROVIDERS, return_value=[provider]):
            result = CliRunner().invoke(
                cli,
                [
                    "run",
                    "-c",
                    str(_config(tmp_path)),
                    "-o",
                    str(output),
                    "--age-days",
                    "5",
                ],
            )

        assert result.exit_code == 0, result.output
        content = output.read_text(encoding="utf-8")
        assert "a/b - v2.0.0" in content
        assert "a/b - v1.0.0" not in content

    def test_config_age_limit_applies_without_override(self, tmp_path: Path) -> None:
        """Test that age_limit_days from the config bounds the window."""
        output = tmp_path / "releases.xml"
        provider = StubProvider(
            "github",
            [
                make_event("a/b", "v2.0.0", _days_ago(1)),
                make_event("a/b", "v1.0.0", _days_ago(10)),
            ],
        )

        with patch(BUILD_PROVIDERS, return_value=[provider]):
            result = CliRunner().invoke(
                cli,
                [
                    "run",
                    "-c",
                    str(_config(tmp_path, "age_limit_days: 5\n")),
                    "-o",
                    str(output),
                ],
            )

        assert result.exit_code == 0, result.output
        content = output.read_text(encoding="utf-8")
        assert "a/b - v2.0.0" in content
        assert "a/b - v1.0.0" not in content

    def test_run_complete_logs_provider_metrics(self, tmp_path: Path) -> None:
        """Test that per-provider counters are reported when the run ends."""
        ProviderMetrics.get_instance().record_api_call("github")
        provider = StubProvider("github", [make_event("a/b", "v1.0.0", _days_ago(1))])

        with (
            patch(BUILD_PROVIDERS, return_value=[provider]),
            patch(CONFIGURE_LOGGING),
            capture_logs() as logs,
        ):
            result = CliRunner().invoke(
                cli,
                ["run", "-c", str(_config(tmp_path)), "-o", str(tmp_path / "f.xml")],
            )

        assert result.exit_code == 0, result.output
        complete = next(e for e in logs if e["event"] == "tracker_run_complete")
        assert complete["api_calls"] == 1
        assert complete["providers"]["api_calls"] == {"github": 1}
        assert "github" in complete["providers"]["duration_ms"]
        assert isinstance(complete["rate_limit_waits"], dict)

    def test_run_context_cleared_after_run(self, tmp_path: Path) -> None:
        """Test that the run id does not leak past the command."""
        with patch(BUILD_PROVIDERS, return_value=[StubProvider("github")]):
            result = CliRunner().invoke(
                cli,
                ["run", "-c", str(_config(tmp_path)), "-o", str(tmp_path / "f.xml")],
            )

        assert result.exit_code == 0, result.output
        assert structlog.contextvars.get_contextvars() == {}

    def test_merges_previous_feed(self, tmp_path: Path) -> None:
        """Test that still-recent entries from the existing feed are kept."""
        output = tmp_path / "releases.xml"
        previous = make_event("old/repo", "v0.1.0", _days_ago(3), provider="gitlab")
        output.write_text(
            AtomFeedRenderer(FeedConfig()).render([previous]), encoding="utf-8"
        )

        with patch(BUILD_PROVIDERS, return_value=[StubProvider("github")]):
            result = CliRunner().invoke(
                cli, ["run", "-c", str(_config(tmp_path)), "-o", str(output)]
            )

        assert result.exit_code == 0, result.output
        assert "old/repo - v0.1.0" in output.read_text(encoding="utf-8")

    def test_no_merge_existing(self, tmp_path: Path) -> None:
        """Test that --no-merge-existing ignores the existing feed."""
        output = tmp_path / "releases.xml"
        previous = make_event("old/repo", "v0.1.0", _days_ago(3), provider="gitlab")
        output.write_text(
            AtomFeedRenderer(FeedConfig()).render([previous]), encoding="utf-8"
        )

        with patch(BUILD_PROVIDERS, return_value=[StubProvider("github")]):
            result = CliRunner().invoke(
                cli,
                [
                    "run",
                    "-c",
                    str(_config(tmp_path)),
                    "-o",
                    str(output),
                    "--no-merge-existing",
                ],
            )

        assert result.exit_code == 0, result.output
        assert "old/repo" not in output.read_text(encoding="utf-8")

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Test that validation errors are printed with hints."""
        config = _config(tmp_path, "age_limit_days: 0\n")

        result = CliRunner().invoke(
            cli, ["run", "-c", str(config), "-o", str(tmp_path / "out.xml")]
        )

        assert result.exit_code == 1
        assert "Configuration validation failed:" in result.output
        assert "age_limit_days" in result.output

    def test_missing_config_rejected_by_click(self, tmp_path: Path) -> None:
        """Test that a nonexistent config path is a usage error."""
        result = CliRunner().invoke(cli, ["run", "-c", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 2


class TestValidateCommand:
    """Tests for the validate command."""

    def test_valid_config(self, tmp_path: Path) -> None:
        """Test the validation summary."""
        providers = [StubProvider("github"), StubProvider("codeberg")]

        with patch(BUILD_PROVIDERS, return_value=providers):
            result = CliRunner().invoke(
                cli, ["validate", "-c", str(_config(tmp_path))]
            )

        assert result.exit_code == 0, result.output
        assert "Configuration is valid!" in result.output
        assert "Age limit: 30 days" in result.output
        assert "- codeberg" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Test validation failure output."""
        config = _config(tmp_path, "unknown_key: 1\n")

        result = CliRunner().invoke(cli, ["validate", "-c", str(config)])

        assert result.exit_code == 1
        assert "unknown_key" in result.output


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        """Test the version option."""
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
