"""Helpers for redacting Open-Meteo keys and Redis credentials from logs and journals."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

REDACTED = "[REDACTED]"

_SENSITIVE_KEY_RE = re.compile(
    r"(authorization|token|secret|password|api[_-]?key|redis[_-]?url)",
    re.IGNORECASE,
)
# Open-Meteo customer keys travel as a query parameter (``&apikey=...``).
_QUERY_SECRET_RE = re.compile(
    r"(?i)([?&](?:apikey|api_key|token)=)[^&\s#]+",
)
_KEY_VALUE_SECRET_RE = re.compile(
    r"""(?ix)
    \b
    (
      authorization|
      token|
      secret|
      password|
      api[_-]?key
    )
    \s*[:=]\s*
    ([^\s,;&]+)
    """
)
_REDIS_PASSWORD_RE = re.compile(r"(rediss?://[^:/@\s]*:)[^@\s]+(@)")


def sanitize_text(text: str) -> str:
    """Redact query-string keys, credentialed Redis URLs and ``key=value`` secrets."""
    sanitized = _QUERY_SECRET_RE.sub(r"\1" + REDACTED, text)
    sanitized = _REDIS_PASSWORD_RE.sub(r"\1" + REDACTED + r"\2", sanitized)
    return _KEY_VALUE_SECRET_RE.sub(lambda m: f"{m.group(1)}={REDACTED}", sanitized)


def sanitize_for_logging(value: Any) -> Any:
    """Recursively redact sensitive values; pydantic models are dumped to JSON-safe data first."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return {
            key: REDACTED
            if _SENSITIVE_KEY_RE.search(str(key))
            else sanitize_for_logging(child)
            for key, child in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_for_logging(item) for item in value)
    if isinstance(value, str):
        return sanitize_text(value)
    return value
