"""Adapter between platform SDK callbacks and the activation coordinator."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fishgate.coordinator import ActivationCoordinator
from fishgate.notifications import extract_push_destination
from fishgate.state.store import ActivationStore

_logger = logging.getLogger(__name__)

DEEPLINK_FOUND = "found"


def _string_keys(data: Mapping[Any, Any]) -> dict[str, Any]:
    return {str(key): value for key, value in data.items()}


class SdkBridge:
    """Routes attribution, deeplink and push callbacks to their owners."""

    def __init__(self, coordinator: ActivationCoordinator, store: ActivationStore) -> None:
        self._coordinator = coordinator
        self._store = store

    def on_conversion_data_success(self, data: Mapping[Any, Any]) -> None:
        self._coordinator.ingest_attribution(_string_keys(data))

    def on_conversion_data_fail(self, error: BaseException | str | None = None) -> None:
        """Attribution failed; activation continues with an empty payload."""
        _logger.debug("Conversion data failed: %s", error)
        self._coordinator.ingest_attribution({})

    def on_deeplink_resolved(self, status: str, click_event: Mapping[Any, Any] | None) -> None:
        if status != DEEPLINK_FOUND or click_event is None:
            _logger.debug("Deeplink not used status=%s", status)
            return
        self._coordinator.ingest_deeplink(_string_keys(click_event))

    def on_push_message(self, payload: Mapping[str, Any]) -> str | None:
        """Store a destination carried by a push message as the one-shot override."""
        destination = extract_push_destination(payload)
        if destination is not None:
            self._store.set_temporary_destination(destination)
        return destination

    def on_push_token(self, token: str | None) -> None:
        if token:
            self._store.save_push_token(token)
