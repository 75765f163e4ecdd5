"""Noise heuristics for raw tags.

Raw tags are advisory. Moving tags (``latest``, ``main``, ``nightly``) and
prerelease tags that duplicate a formal prerelease are rejected before a tag
is ever compared against the release set.
"""

from typing import Final


MOVING_TAGS: Final[frozenset[str]] = frozenset(
    {
        # latest-commit markers
        "latest",
        "tip",
        "continuous",
        "head",
        # branch names
        "main",
        "master",
        "trunk",
        "develop",
        "development",
        "dev",
        # fast channels
        "nightly",
        "edge",
        "canary",
        # slow channels without version information
        "release",
        "snapshot",
        "unstable",
        "experimental",
        "prerelease",
        "preview",
    }
)

STANDALONE_PRERELEASE_TAGS: Final[frozenset[str]] = frozenset({"alpha", "beta", "rc"})

PRERELEASE_IDENTIFIERS: Final[tuple[str, ...]] = ("-alpha", "-beta", "-rc", "-pre")

SKIPPED_PREFIXES: Final[tuple[str, ...]] = ("pre-", "dev-", "test-", "debug-")

# major.minor.patch
_SEMVER_DOTS = 2


def is_semver(tag: str) -> bool:
    """Check whether a tag is shaped like ``[v]major.minor.patch[-+suffix]``.

    Args:
        tag: Tag name (case-insensitive).

    Returns:
        True if the tag looks like semantic versioning.
    """
    value = tag.lower()
    if value.startswith("v"):
        value = value[1:]
    if not value:
        return False

    dot_count = 0
    has_digit = False

    for char in value:
        if "0" <= char <= "9":
            has_digit = True
        elif char == ".":
            if not has_digit:
                return False
            dot_count += 1
            has_digit = False
            if dot_count > _SEMVER_DOTS:
                break
        elif char in "-+":
            break
        else:
            return False

    return dot_count >= _SEMVER_DOTS and has_digit


def has_prerelease_identifier(tag: str) -> bool:
    """Check whether a tag carries a prerelease identifier.

    Git-describe suffixes such as ``-212-g74599361`` are not prerelease
    identifiers.

    Args:
        tag: Tag name (case-insensitive).

    Returns:
        True if the tag contains -alpha, -beta, -rc or -pre.
    """
    value = tag.lower()
    return any(identifier in value for identifier in PRERELEASE_IDENTIFIERS)


def should_skip_tag(tag: str) -> bool:
    """Decide whether a raw tag is noise.

    Args:
        tag: Tag name.

    Returns:
        True if the tag must be discarded.
    """
    value = tag.strip().lower()
    if not value:
        return True

    if value in MOVING_TAGS:
        return True

    if is_semver(value):
        if has_prerelease_identifier(value):
            return True
    elif value in STANDALONE_PRERELEASE_TAGS:
        return True

    return value.startswith(SKIPPED_PREFIXES)
