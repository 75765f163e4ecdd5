"""structlog setup for the CLI."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

from release_tracker.fetch.redact import REDACTED_VALUE


SECRET_KEY_MARKERS = ("token", "password", "secret", "authorization")

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def mask_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace values of keys that look like credentials."""
    for key, value in event_dict.items():
        if value and any(marker in key.lower() for marker in SECRET_KEY_MARKERS):
            event_dict[key] = REDACTED_VALUE
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structlog and the standard library root logger.

    Output goes to stderr by default so a feed printed with ``--dry-run``
    stays clean on stdout.

    Args:
        level: Minimum level to emit.
        output: Stream to write to.
        json_format: One JSON object per line when True, console format
            otherwise.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=output, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_run_context(run_id: str, **extra: Any) -> None:
    """Attach ``run_id`` (and any extra keys) to every later log event."""
    structlog.contextvars.bind_contextvars(run_id=run_id, **extra)


def clear_run_context() -> None:
    """Drop everything bound by bind_run_context."""
    structlog.contextvars.clear_contextvars()
