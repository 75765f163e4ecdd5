"""Configuration loader with validation."""

import hashlib
import time
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from release_tracker.config.error_hints import format_validation_error
from release_tracker.config.schemas import TrackerConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")

    def format_errors(self, *, include_hint: bool = True) -> list[str]:
        """Render each error as a line with an optional remediation hint."""
        return [
            format_validation_error(
                err["loc"], err["msg"], err["type"], include_hint=include_hint
            )
            for err in self.errors
        ]


class ConfigLoader:
    """Loads and validates the tracker configuration file.

    The file is YAML; JSON documents are valid YAML and load unchanged.
    """

    def __init__(self, run_id: str) -> None:
        """Initialize the loader.

        Args:
            run_id: Unique identifier for the current run.
        """
        self._run_id = run_id
        self._file_checksum: str | None = None
        self._validation_duration_ms: float = 0
        self._log = logger.bind(component="config", run_id=run_id)

    @property
    def file_checksum(self) -> str | None:
        """Get SHA-256 checksum of the last loaded file."""
        return self._file_checksum

    @property
    def validation_duration_ms(self) -> float:
        """Get validation duration in milliseconds."""
        return self._validation_duration_ms

    def load(self, path: Path) -> TrackerConfig:
        """Load and validate a configuration file.

        Args:
            path: Path to the configuration file.

        Returns:
            Validated TrackerConfig.

        Raises:
            ConfigValidationError: If the file is missing, unparseable or invalid.
        """
        start_time = time.perf_counter()
        log = self._log.bind(file_path=str(path))
        log.info("loading_config_file")

        try:
            content_bytes = path.read_bytes()
        except FileNotFoundError as e:
            log.error("config_file_not_found", error=str(e))
            raise ConfigValidationError(
                [{"loc": "file", "msg": str(e), "type": "file_not_found"}],
                str(path),
            ) from e

        self._file_checksum = hashlib.sha256(content_bytes).hexdigest()

        try:
            parsed = yaml.safe_load(content_bytes.decode("utf-8"))
        except yaml.YAMLError as e:
            log.error("config_yaml_parse_error", error=str(e))
            raise ConfigValidationError(
                [{"loc": "yaml", "msg": str(e), "type": "yaml_parse_error"}],
                str(path),
            ) from e

        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            log.error("config_root_not_mapping", root_type=type(parsed).__name__)
            raise ConfigValidationError(
                [
                    {
                        "loc": "root",
                        "msg": f"Expected a mapping, got {type(parsed).__name__}",
                        "type": "root_type",
                    }
                ],
                str(path),
            )

        log.info("config_file_loaded", file_sha256=self._file_checksum)

        try:
            config = TrackerConfig.model_validate(parsed)
        except ValidationError as e:
            errors = [
                {
                    "loc": ".".join(str(loc) for loc in err["loc"]) or "root",
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            log.error(
                "config_validation_failed",
                validation_error_count=len(errors),
                errors=errors,
            )
            raise ConfigValidationError(errors, str(path)) from e

        self._validation_duration_ms = (time.perf_counter() - start_time) * 1000
        log.info(
            "config_validation_complete",
            validation_error_count=0,
            config_validation_duration_ms=self._validation_duration_ms,
        )
        return config
