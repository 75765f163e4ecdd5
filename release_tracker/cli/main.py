"""CLI commands for the release tracker."""

import logging
import sys
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import click
import structlog

from release_tracker import __version__
from release_tracker.config.loader import ConfigLoader, ConfigValidationError
from release_tracker.config.schemas import TrackerConfig
from release_tracker.feed.atom import AtomFeedRenderer
from release_tracker.feed.io import write_feed
from release_tracker.feed.reader import load_previous_events
from release_tracker.fetch.client import HttpFetcher
from release_tracker.fetch.metrics import FetchMetrics
from release_tracker.models import ReleaseEvent
from release_tracker.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
)
from release_tracker.orchestrator import ProviderOrchestrator
from release_tracker.pipeline import SECONDS_PER_DAY, PipelineResult, ReleasePipeline
from release_tracker.providers.metrics import ProviderMetrics
from release_tracker.providers.platform.rate_limiter import platform_rate_limit_waits
from release_tracker.providers.registry import build_providers
from release_tracker.settings import get_settings


logger = structlog.get_logger()

COMPONENT_CLI = "cli"
DEFAULT_OUTPUT = Path("releases.xml")
FAILURE_MESSAGE = "One or more providers failed to fetch releases"


@dataclass
class RunOptions:
    """Options for the run command."""

    config_path: Path
    output_path: Path
    age_days: int | None
    merge_existing: bool
    json_logs: bool
    verbose: bool
    dry_run: bool = False


def _setup_logging_and_context(
    json_logs: bool, verbose: bool, run_id: str, command: str
) -> structlog.typing.FilteringBoundLogger:
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, json_format=json_logs)
    bind_run_context(run_id, command=command)
    return logger.bind(component=COMPONENT_CLI)  # type: ignore[no-any-return]


def _load_configuration(
    config_path: Path, run_id: str, log: structlog.typing.FilteringBoundLogger
) -> TrackerConfig:
    """Load and validate configuration, exiting with formatted errors on failure."""
    loader = ConfigLoader(run_id=run_id)
    try:
        config = loader.load(config_path)
    except ConfigValidationError as e:
        log.warning("config_load_failed", error=str(e))
        click.echo("Configuration validation failed:", err=True)
        for formatted in e.format_errors():
            click.echo(f"  - {formatted}", err=True)
        sys.exit(1)

    log.info("config_validated", config_checksum=loader.file_checksum)
    return config


def _print_summary(result: PipelineResult) -> None:
    for provider_result in result.provider_results:
        if provider_result.error is None:
            click.echo(
                f"✓ {provider_result.provider_name}: "
                f"{provider_result.event_count} events"
            )
        else:
            click.echo(f"✗ {provider_result.error.summary()}", err=True)
    click.echo(f"Total: {len(result.events)} events")


def _execute_run(options: RunOptions) -> None:
    """Execute the run command.

    Phases:
    1. Load configuration
    2. Read the previous feed
    3. Build providers, then fetch, merge and age-filter
    4. Render and write the feed
    5. Report provider failures
    """
    run_id = str(uuid.uuid4())
    log = _setup_logging_and_context(options.json_logs, options.verbose, run_id, "run")
    log.info(
        "tracker_run_started",
        config_path=str(options.config_path),
        output_path=str(options.output_path),
        dry_run=options.dry_run,
    )

    config = _load_configuration(options.config_path, run_id, log)
    age_limit_seconds = (
        options.age_days * SECONDS_PER_DAY
        if options.age_days
        else config.age_limit_seconds
    )

    previous: list[ReleaseEvent] = []
    if options.merge_existing:
        previous = load_previous_events(options.output_path, run_id)

    now = datetime.now(UTC)
    pipeline = ReleasePipeline(
        ProviderOrchestrator(run_id), age_limit_seconds=age_limit_seconds
    )
    with HttpFetcher(config.fetch, run_id) as http_client:
        providers = build_providers(config, http_client, run_id, get_settings())
        if not providers:
            log.warning("no_providers_configured")
        result = pipeline.run(providers, now=now, previous=previous)

    content = AtomFeedRenderer(config.feed, run_id).render(result.events, now)
    if options.dry_run:
        click.echo(content)
    else:
        generated = write_feed(options.output_path, content, run_id)
        log.info(
            "feed_written",
            path=generated.path,
            bytes_written=generated.bytes_written,
            sha256=generated.sha256,
        )

    _print_summary(result)

    provider_metrics = ProviderMetrics.get_instance()
    log.info(
        "tracker_run_complete",
        event_count=len(result.events),
        provider_errors=len(result.errors),
        api_calls=provider_metrics.get_api_calls_total(),
        providers=provider_metrics.to_dict(),
        rate_limit_waits=platform_rate_limit_waits(),
        http=FetchMetrics.get_instance().snapshot(),
    )

    if result.has_errors:
        click.echo(FAILURE_MESSAGE, err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Release tracker CLI."""


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the tracker configuration file (YAML or JSON).",
)
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Path of the Atom feed to write.",
)
@click.option(
    "--age-days",
    type=click.IntRange(min=1, max=3650),
    default=None,
    help="Override the age window in days (default: from config, 90).",
)
@click.option(
    "--merge-existing/--no-merge-existing",
    default=True,
    help="Keep still-recent entries from the feed already at --output (default: true).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print the feed to stdout instead of writing it.",
)
def run(  # noqa: PLR0913
    config_path: Path,
    output_path: Path,
    age_days: int | None,
    merge_existing: bool,
    json_logs: bool,
    verbose: bool,
    dry_run: bool,
) -> None:
    """Fetch releases from every configured provider and write the feed.

    The feed is always written with whatever was fetched; the command exits
    non-zero afterwards if any provider failed.
    """
    options = RunOptions(
        config_path=config_path,
        output_path=output_path,
        age_days=age_days,
        merge_existing=merge_existing,
        json_logs=json_logs,
        verbose=verbose,
        dry_run=dry_run,
    )
    try:
        _execute_run(options)
    finally:
        clear_run_context()


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the tracker configuration file (YAML or JSON).",
)
def validate(config_path: Path) -> None:
    """Validate the configuration file without fetching anything."""
    run_id = str(uuid.uuid4())
    log = _setup_logging_and_context(False, False, run_id, "validate")
    try:
        config = _load_configuration(config_path, run_id, log)
        with HttpFetcher(config.fetch, run_id) as http_client:
            providers = build_providers(config, http_client, run_id, get_settings())
    finally:
        clear_run_context()

    click.echo("Configuration is valid!")
    click.echo(f"  Age limit: {config.age_limit_days} days")
    click.echo(f"  Providers: {len(providers)}")
    for provider in providers:
        click.echo(f"    - {provider.name}")


if __name__ == "__main__":
    cli()
