"""Utilities for safe structured logging fields."""

from __future__ import annotations

import hashlib
import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

REDACTION_MARKER = "REDACTED"
_CREDENTIAL_PARAMS = frozenset({"token", "sig", "signature", "auth", "key", "api_key"})
_URL_PATTERN = re.compile(r"https?://[^\s'\"<>]+")


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for log correlation fields."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def _redact_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    pairs = parse_qsl(parts.query, keep_blank_values=True)
    if not any(name.lower() in _CREDENTIAL_PARAMS for name, _ in pairs):
        return url

    redacted = [
        (name, REDACTION_MARKER if name.lower() in _CREDENTIAL_PARAMS else value)
        for name, value in pairs
    ]
    return urlunsplit(parts._replace(query=urlencode(redacted)))


def redact_url_credentials(text: str) -> str:
    """Replace credential-bearing query parameter values in every URL found in ``text``."""
    if not text:
        return text
    return _URL_PATTERN.sub(lambda match: _redact_url(match.group(0)), text)


def redact_argv(argv: list[str]) -> list[str]:
    return [redact_url_credentials(arg) for arg in argv]
