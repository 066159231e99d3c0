"""Connectivity monitoring."""

from __future__ import annotations

import asyncio
import logging
import socket
import threading
from collections.abc import Callable
from typing import Protocol

_logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], None]


class NetworkWatcher(Protocol):
    """Reports connectivity transitions through a boolean callback."""

    def start(self, on_change: ConnectivityCallback) -> None:
        ...

    def stop(self) -> None:
        ...


def tcp_probe(host: str, port: int, timeout: float = 3.0) -> bool:
    """Return ``True`` if a TCP connection to *host*:*port* can be opened."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class PollingNetworkWatcher:
    """Threaded probe loop that emits connectivity changes onto an asyncio loop.

    The first observation is always reported, afterwards only changes are.
    Callbacks run on the event loop that was running when :meth:`start`
    was called, never on the probe thread.
    """

    def __init__(
        self,
        *,
        probe: Callable[[], bool],
        interval: float = 2.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._logger = logger or _logger
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_change: ConnectivityCallback | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._last: bool | None = None

    @classmethod
    def for_host(cls, host: str, port: int, *, interval: float = 2.0) -> PollingNetworkWatcher:
        return cls(probe=lambda: tcp_probe(host, port), interval=interval)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, on_change: ConnectivityCallback) -> None:
        """Begin probing in a background thread."""
        self.stop()
        self._loop = asyncio.get_running_loop()
        self._on_change = on_change
        self._last = None
        self._stop_event = threading.Event()
        thread = threading.Thread(target=self._run, args=(self._stop_event,), name="fishgate-network", daemon=True)
        self._thread = thread
        thread.start()
        self._logger.debug("Network watcher started interval=%s", self._interval)

    def stop(self) -> None:
        """Stop probing; no callback fires after this returns."""
        thread = self._thread
        self._thread = None
        self._on_change = None
        self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval + 5.0)
            self._logger.debug("Network watcher stopped")

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                connected = bool(self._probe())
            except Exception:
                self._logger.debug("Connectivity probe failed", exc_info=True)
                connected = False

            if connected != self._last:
                self._last = connected
                loop = self._loop
                if loop is not None and not stop_event.is_set():
                    try:
                        loop.call_soon_threadsafe(self._dispatch, stop_event, connected)
                    except RuntimeError:
                        # Loop already closed.
                        return
            stop_event.wait(self._interval)

    def _dispatch(self, stop_event: threading.Event, connected: bool) -> None:
        # Re-checked on the loop: stop() may have run after the probe thread queued this.
        callback = self._on_change
        if stop_event.is_set() or callback is None:
            return
        self._logger.debug("Connectivity changed connected=%s", connected)
        callback(connected)
