"""Unit tests for provider construction."""

from unittest.mock import MagicMock

from release_tracker.config.schemas import (
    ForgejoInstanceConfig,
    SourceHutConfig,
    TrackerConfig,
)
from release_tracker.providers.platform.forgejo import ForgejoProvider
from release_tracker.providers.platform.github import GitHubProvider
from release_tracker.providers.platform.gitlab import GitLabProvider
from release_tracker.providers.platform.sourcehut import SourceHutProvider
from release_tracker.providers.registry import build_providers


def _settings(
    forgejo: dict[str, str] | None = None, **tokens: str
) -> MagicMock:
    settings = MagicMock()
    settings.auth_token_for_platform.side_effect = tokens.get
    settings.forgejo_token.side_effect = (forgejo or {}).get
    return settings


class TestBuildProviders:
    """Tests for build_providers."""

    def test_no_tokens_no_providers(self) -> None:
        """Test that nothing is built without credentials."""
        assert build_providers(TrackerConfig(), MagicMock(), "run-1") == []

    def test_stable_order(self) -> None:
        """Test github, gitlab, forgejo, sourcehut ordering."""
        config = TrackerConfig(
            github_token="gh",
            gitlab_token="gl",
            codeberg_token="cb",
            sourcehut=SourceHutConfig(token="sh", repositories=["~u/r"]),
        )

        providers = build_providers(config, MagicMock(), "run-1")

        assert [type(p) for p in providers] == [
            GitHubProvider,
            GitLabProvider,
            ForgejoProvider,
            SourceHutProvider,
        ]
        assert [p.name for p in providers] == [
            "github",
            "gitlab",
            "codeberg",
            "sourcehut",
        ]

    def test_environment_fills_missing_tokens(self) -> None:
        """Test that environment tokens are used when the config has none."""
        providers = build_providers(
            TrackerConfig(), MagicMock(), "run-1", _settings(github="env-gh")
        )

        assert [p.name for p in providers] == ["github"]
        assert providers[0]._token == "env-gh"

    def test_config_token_takes_priority(self) -> None:
        """Test that a config token wins over the environment."""
        providers = build_providers(
            TrackerConfig(gitlab_token="from-config"),
            MagicMock(),
            "run-1",
            _settings(gitlab="from-env"),
        )

        assert providers[0]._token == "from-config"

    def test_forgejo_instances(self) -> None:
        """Test that each tokened instance becomes its own provider."""
        config = TrackerConfig(
            forgejo=[
                ForgejoInstanceConfig(
                    name="work", base_url="https://git.work.example", token="w"
                ),
                ForgejoInstanceConfig(name="notoken", base_url="https://x.example"),
                ForgejoInstanceConfig(name="codeberg", base_url="https://codeberg.org"),
            ]
        )

        providers = build_providers(
            config, MagicMock(), "run-1", _settings(forgejo={"codeberg": "env-cb"})
        )

        assert [p.name for p in providers] == ["work", "codeberg"]
        assert isinstance(providers[0], ForgejoProvider)
        assert providers[0].base_url == "https://git.work.example"
        assert providers[1]._token == "env-cb"

    def test_sourcehut_needs_repositories(self) -> None:
        """Test that a SourceHut token alone builds nothing."""
        config = TrackerConfig(sourcehut=SourceHutConfig(token="sh"))

        assert build_providers(config, MagicMock(), "run-1") == []
