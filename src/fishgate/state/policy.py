"""Deterministic activation policies.

Pure functions only; the coordinator feeds them values read from the
store so they can be tested without any I/O.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from fishgate._constants import ATTRIBUTION_STATUS_KEY, ORGANIC_STATUS, PERMISSION_COOLDOWN_SECONDS


def merge_attribution(attribution: Mapping[str, Any], deeplink: Mapping[str, Any]) -> dict[str, Any]:
    """Merge deeplink values into attribution without overwriting.

    Attribution wins on every key collision; deeplink only fills gaps.
    """
    merged: dict[str, Any] = copy.deepcopy(dict(attribution))
    for key, value in deeplink.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
    return merged


def is_first_run_organic(*, first_launch: bool, attribution: Mapping[str, Any]) -> bool:
    """Organic installs get a delayed attribution re-fetch on their first launch."""
    return first_launch and attribution.get(ATTRIBUTION_STATUS_KEY) == ORGANIC_STATUS


def should_show_permission_request(
    *,
    granted: bool,
    denied: bool,
    last_request: datetime | None,
    now: datetime,
    cooldown_seconds: float = PERMISSION_COOLDOWN_SECONDS,
) -> bool:
    """Decide whether the notification permission prompt should be flagged.

    Policy:
    - A recorded grant or denial suppresses the prompt for good.
    - A dismissal younger than *cooldown_seconds* suppresses it.
    - Otherwise prompt.
    """
    if granted or denied:
        return False
    if last_request is not None and (now - last_request).total_seconds() < cooldown_seconds:
        return False
    return True
