"""Scrub credentials from headers and URLs before they reach the logs."""

import re
from collections.abc import Mapping


REDACTED_VALUE = "[REDACTED]"

SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "private-token",
        "cookie",
        "x-api-key",
    }
)

_USERINFO = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*://)[^/@?#]+@")
_TOKEN_PARAM = re.compile(
    r"([?&](?:access_token|private_token|token)=)[^&#]*", re.IGNORECASE
)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with secret values replaced."""
    return {
        name: REDACTED_VALUE if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def redact_url(url: str) -> str:
    """Hide embedded ``user:password@`` and token query parameters."""
    url = _USERINFO.sub(rf"\1{REDACTED_VALUE}@", url)
    return _TOKEN_PARAM.sub(rf"\1{REDACTED_VALUE}", url)
