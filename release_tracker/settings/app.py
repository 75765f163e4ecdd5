"""Credentials from the environment (and a local ``.env`` file)."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Provider tokens that may be kept out of the config file.

    ``FORGEJO_TOKENS`` is a JSON object mapping Forgejo instance names to
    tokens, e.g. ``{"myforge": "..."}``. ``CODEBERG_TOKEN`` is the token
    for the instance named ``codeberg``.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False, env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    github_token: str | None = Field(
        default=None, validation_alias=AliasChoices("GITHUB_TOKEN", "GH_TOKEN")
    )
    gitlab_token: str | None = Field(default=None, validation_alias="GITLAB_TOKEN")
    codeberg_token: str | None = Field(default=None, validation_alias="CODEBERG_TOKEN")
    sourcehut_token: str | None = Field(
        default=None, validation_alias="SOURCEHUT_TOKEN"
    )
    forgejo_tokens: dict[str, str] = Field(
        default_factory=dict, validation_alias="FORGEJO_TOKENS"
    )

    @field_validator(
        "github_token", "gitlab_token", "codeberg_token", "sourcehut_token"
    )
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        return value.strip() or None if value else None

    def auth_token_for_platform(self, platform: str) -> str | None:
        """Token for a fixed platform name, or None."""
        tokens = {
            "github": self.github_token,
            "gitlab": self.gitlab_token,
            "codeberg": self.codeberg_token,
            "sourcehut": self.sourcehut_token,
        }
        return tokens.get(platform)

    def forgejo_token(self, instance: str) -> str | None:
        """Token for a named Forgejo instance.

        ``FORGEJO_TOKENS`` wins; ``CODEBERG_TOKEN`` covers the instance
        named ``codeberg``.
        """
        token = self.forgejo_tokens.get(instance)
        if token:
            return token
        return self.codeberg_token if instance == "codeberg" else None


def get_settings() -> AppSettings:
    """Read settings from the current environment."""
    return AppSettings()
