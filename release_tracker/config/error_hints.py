"""Remediation hints shown next to configuration errors."""

from fnmatch import fnmatchcase
from typing import Final


# Checked in order against the dotted error location; first match wins
LOCATION_HINTS: Final[tuple[tuple[str, str], ...]] = (
    (
        "forgejo.*.base_url",
        "Use the instance root, e.g. 'https://codeberg.org' (no /api/v1).",
    ),
    (
        "forgejo.*.name",
        "Names label feed entries; use lowercase letters, digits, '-' or '_'.",
    ),
    (
        "forgejo",
        "Each Forgejo instance needs a unique name (not github, gitlab or "
        "sourcehut) and a base_url.",
    ),
    (
        "codeberg_token",
        "codeberg_token is shorthand for one 'codeberg' instance; move it "
        "into the forgejo list instead of using both.",
    ),
    (
        "sourcehut.repositories*",
        "List repositories as '~user/name', e.g. '~sircmpwn/scdoc'.",
    ),
    ("*token", "Tokens may also come from GITHUB_TOKEN, GITLAB_TOKEN and so on."),
    ("age_limit_days", "Must be a whole number of days between 1 and 3650."),
    ("fan_out.*", "Worker bounds must satisfy 1 <= worker_floor <= worker_ceiling."),
    ("feed.*", "Feed link, self_url and feed_id must be absolute URLs."),
    ("fetch.retry_policy.*", "Retries are capped at 10; delays are in seconds."),
)

TYPE_HINTS: Final[dict[str, str]] = {
    "missing": "This key is required.",
    "extra_forbidden": "Unknown key; check its spelling and indentation.",
    "int_parsing": "Expected a whole number.",
    "float_parsing": "Expected a number.",
    "string_type": "Expected a quoted string.",
    "list_type": "Expected a YAML list ('- item' per line).",
    "model_type": "Expected a mapping of keys to values.",
    "url_parsing": "Expected an absolute http(s) URL.",
    "file_not_found": "Check the --config path.",
    "yaml_parse_error": "The file is not valid YAML; check indentation and quoting.",
    "root_type": "The top level must be a mapping, not a list or scalar.",
}

DEFAULT_HINT: Final = "Check the value against the documented configuration keys."


def get_error_hint(error_type: str, location: str | None = None) -> str:
    """Pick the most specific hint for an error.

    Args:
        error_type: Pydantic error type (e.g. 'missing') or a loader type.
        location: Dotted path of the failing key (e.g. 'forgejo.0.base_url').

    Returns:
        A one-line hint.
    """
    if location:
        for pattern, hint in LOCATION_HINTS:
            if fnmatchcase(location, pattern):
                return hint
    return TYPE_HINTS.get(error_type, DEFAULT_HINT)


def format_validation_error(
    location: str,
    message: str,
    error_type: str,
    *,
    include_hint: bool = True,
) -> str:
    """Render ``location: message`` with the hint on an indented second line."""
    line = f"{location}: {message}"
    if not include_hint:
        return line
    return f"{line}\n    Hint: {get_error_hint(error_type, location)}"
