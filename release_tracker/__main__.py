"""Allow ``python -m release_tracker``."""

from release_tracker.cli.main import cli


cli()
