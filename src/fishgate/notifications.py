"""Push notification permission and message helpers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class PermissionAuthority(Protocol):
    """Platform notification permission authority."""

    async def request_authorization(self) -> bool:
        """Ask the user for permission; ``True`` when granted."""
        ...

    def register_for_remote_notifications(self) -> None:
        """Register with the platform push service after a grant."""
        ...


def extract_push_destination(payload: Mapping[str, Any]) -> str | None:
    """Find a destination URL in a push message.

    Looks at ``payload["url"]`` first, then ``payload["data"]["url"]``.
    """
    url = payload.get("url")
    if isinstance(url, str) and url:
        return url
    data = payload.get("data")
    if isinstance(data, Mapping):
        nested = data.get("url")
        if isinstance(nested, str) and nested:
            return nested
    return None
