"""Build the configured providers."""

import structlog

from release_tracker.config.schemas import TrackerConfig
from release_tracker.fetch.client import HttpFetcher
from release_tracker.providers.base import ReleaseProvider
from release_tracker.providers.platform.constants import (
    PROVIDER_CODEBERG,
    PROVIDER_GITHUB,
    PROVIDER_GITLAB,
    PROVIDER_SOURCEHUT,
)
from release_tracker.providers.platform.forgejo import ForgejoProvider
from release_tracker.providers.platform.github import GitHubProvider
from release_tracker.providers.platform.gitlab import GitLabProvider
from release_tracker.providers.platform.sourcehut import SourceHutProvider
from release_tracker.settings import AppSettings


logger = structlog.get_logger()


def build_providers(
    config: TrackerConfig,
    http_client: HttpFetcher,
    run_id: str,
    settings: AppSettings | None = None,
) -> list[ReleaseProvider]:
    """Construct every provider that has credentials.

    Order is github, gitlab, forgejo instances, sourcehut. Tokens from the
    environment fill in tokens missing from the config file.

    Args:
        config: Validated configuration.
        http_client: Shared HTTP client.
        run_id: Run identifier for logging.
        settings: Environment settings; tokens are not read from the
            environment when None.

    Returns:
        Providers in a stable order.
    """
    log = logger.bind(component="registry", run_id=run_id)
    policy = config.fan_out

    def token_for(platform: str, configured: str | None) -> str | None:
        if configured:
            return configured
        if settings is None:
            return None
        return settings.auth_token_for_platform(platform)

    providers: list[ReleaseProvider] = []

    github_token = token_for(PROVIDER_GITHUB, config.github_token)
    if github_token:
        providers.append(
            GitHubProvider(
                http_client, token=github_token, run_id=run_id, policy=policy
            )
        )

    gitlab_token = token_for(PROVIDER_GITLAB, config.gitlab_token)
    if gitlab_token:
        providers.append(
            GitLabProvider(
                http_client, token=gitlab_token, run_id=run_id, policy=policy
            )
        )

    if config.forgejo:
        for instance in config.forgejo:
            token = instance.token
            if not token and settings is not None:
                token = settings.forgejo_token(instance.name)
            if not token:
                log.info("provider_not_configured", provider=instance.name)
                continue
            providers.append(
                ForgejoProvider(
                    http_client,
                    name=instance.name,
                    base_url=instance.base_url,
                    token=token,
                    run_id=run_id,
                    policy=policy,
                )
            )
    else:
        codeberg_token = token_for(PROVIDER_CODEBERG, config.codeberg_token)
        if codeberg_token:
            providers.append(
                ForgejoProvider.codeberg(
                    http_client, token=codeberg_token, run_id=run_id, policy=policy
                )
            )

    sourcehut_token = token_for(PROVIDER_SOURCEHUT, config.sourcehut.token)
    if sourcehut_token and config.sourcehut.repositories:
        providers.append(
            SourceHutProvider(
                http_client,
                token=sourcehut_token,
                repositories=config.sourcehut.repositories,
                run_id=run_id,
                policy=policy,
            )
        )

    log.info(
        "providers_built",
        provider_count=len(providers),
        providers=[p.name for p in providers],
    )
    return providers
