"""Key-value persistence for activation state.

Durable values (cached destination, status flag, permission bookkeeping)
go through a :class:`KeyValueStore`. Attribution and deeplink payloads are
held in memory only and vanish with the process.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from fishgate._constants import (
    KEY_CACHED_DESTINATION,
    KEY_LAUNCHED_BEFORE,
    KEY_PERMISSION_DENIED,
    KEY_PERMISSION_GRANTED,
    KEY_PERMISSION_REQUEST,
    KEY_PUSH_TOKEN,
    KEY_STATUS,
    KEY_TEMPORARY_DESTINATION,
)
from fishgate.exceptions import FishgateError

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class KeyValueStore(Protocol):
    """Structural interface for durable JSON-compatible values."""

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store, mostly useful for tests."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._values.get(key))

    def set(self, key: str, value: Any) -> None:
        self._values[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileKeyValueStore:
    """Store backed by a single JSON object file.

    Every mutation rewrites the file through a temporary sibling and an
    atomic rename, so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._values: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            _logger.warning("Ignoring unreadable store file %s", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            _logger.warning("Ignoring non-object store file %s", self._path)
            return {}
        return data

    def _flush(self, values: dict[str, Any]) -> None:
        temp_path: Path | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
            temp_path = Path(temp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(values, handle, indent=2, sort_keys=True)
            temp_path.replace(self._path)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise FishgateError(f"Failed to write store file {self._path}: {exc}") from exc

    def get(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._values.get(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            updated = dict(self._values)
            updated[key] = copy.deepcopy(value)
            self._flush(updated)
            self._values = updated

    def delete(self, key: str) -> None:
        with self._lock:
            if key not in self._values:
                return
            updated = dict(self._values)
            del updated[key]
            self._flush(updated)
            self._values = updated


class ActivationStore:
    """Typed accessors over a :class:`KeyValueStore`.

    This is the only component that mutates attribution/deeplink payloads
    and the persisted activation bookkeeping.
    """

    def __init__(
        self,
        backend: KeyValueStore | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend: KeyValueStore = backend if backend is not None else InMemoryKeyValueStore()
        self._clock = clock
        self._attribution: dict[str, Any] = {}
        self._deeplink: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Session-scoped payloads
    # ------------------------------------------------------------------

    def store_attribution(self, data: dict[str, Any]) -> None:
        self._attribution = copy.deepcopy(data)

    def get_attribution(self) -> dict[str, Any]:
        return copy.deepcopy(self._attribution)

    def store_deeplink(self, data: dict[str, Any]) -> None:
        self._deeplink = copy.deepcopy(data)

    def get_deeplink(self) -> dict[str, Any]:
        return copy.deepcopy(self._deeplink)

    # ------------------------------------------------------------------
    # Destination / status
    # ------------------------------------------------------------------

    def cache_destination(self, destination: str) -> None:
        self._backend.set(KEY_CACHED_DESTINATION, destination)

    def get_cached_destination(self) -> str | None:
        value = self._backend.get(KEY_CACHED_DESTINATION)
        return value if isinstance(value, str) and value else None

    def set_status(self, status: str) -> None:
        self._backend.set(KEY_STATUS, status)

    def get_status(self) -> str | None:
        value = self._backend.get(KEY_STATUS)
        return value if isinstance(value, str) else None

    def is_first_launch(self) -> bool:
        return not bool(self._backend.get(KEY_LAUNCHED_BEFORE))

    def mark_first_launch_complete(self) -> None:
        self._backend.set(KEY_LAUNCHED_BEFORE, True)

    def set_temporary_destination(self, destination: str) -> None:
        self._backend.set(KEY_TEMPORARY_DESTINATION, destination)

    def take_temporary_destination(self) -> str | None:
        """Return the one-shot destination override and clear it."""
        value = self._backend.get(KEY_TEMPORARY_DESTINATION)
        if value is None:
            return None
        try:
            self._backend.delete(KEY_TEMPORARY_DESTINATION)
        except FishgateError as exc:
            _logger.warning("Could not clear temporary destination: %s", exc)
        return value if isinstance(value, str) and value else None

    def save_push_token(self, token: str) -> None:
        self._backend.set(KEY_PUSH_TOKEN, token)

    def get_push_token(self) -> str | None:
        value = self._backend.get(KEY_PUSH_TOKEN)
        return value if isinstance(value, str) and value else None

    # ------------------------------------------------------------------
    # Permission bookkeeping
    # ------------------------------------------------------------------

    def record_permission_dismissal(self, when: datetime | None = None) -> None:
        moment = when if when is not None else self._clock()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        self._backend.set(KEY_PERMISSION_REQUEST, moment.isoformat())

    def get_last_permission_request(self) -> datetime | None:
        value = self._backend.get(KEY_PERMISSION_REQUEST)
        if not isinstance(value, str):
            return None
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            _logger.debug("Discarding malformed permission timestamp %r", value)
            return None
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        return moment

    def save_permission_state(self, *, granted: bool, denied: bool) -> None:
        self._backend.set(KEY_PERMISSION_GRANTED, granted)
        self._backend.set(KEY_PERMISSION_DENIED, denied)

    def was_permission_granted(self) -> bool:
        return bool(self._backend.get(KEY_PERMISSION_GRANTED))

    def was_permission_denied(self) -> bool:
        return bool(self._backend.get(KEY_PERMISSION_DENIED))
