"""Redaction of attribution and resolution payloads for DEBUG logs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

# Matched case-insensitively against payload keys at any depth.
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {"devkey", "dev_key", "device_id", "af_id", "push_token", "fcm_token", "token", "authorization", "cookie"}
)


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Copy *value* with sensitive keys masked and long strings cut."""
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}...<truncated>"
    return value
