from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable

import pytest

from fishgate.network import PollingNetworkWatcher, tcp_probe


class _ScriptedProbe:
    """Returns the scripted values in order, then repeats the last one."""

    def __init__(self, values: list[bool]) -> None:
        self._values = list(values)
        self._lock = threading.Lock()
        self.calls = 0

    def __call__(self) -> bool:
        with self._lock:
            self.calls += 1
            if len(self._values) > 1:
                return self._values.pop(0)
            return self._values[0]


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_reports_initial_state_then_changes_only() -> None:
    probe = _ScriptedProbe([True, True, False, False, True])
    watcher = PollingNetworkWatcher(probe=probe, interval=0.01)
    seen: list[bool] = []
    loop_thread: list[threading.Thread] = []

    def _on_change(connected: bool) -> None:
        loop_thread.append(threading.current_thread())
        seen.append(connected)

    watcher.start(_on_change)
    try:
        await _wait_for(lambda: len(seen) >= 3 and probe.calls >= 6)
    finally:
        watcher.stop()

    assert seen == [True, False, True]
    assert all(thread is threading.main_thread() for thread in loop_thread)


@pytest.mark.asyncio
async def test_no_callbacks_after_stop() -> None:
    probe = _ScriptedProbe([True, False, True, False, True, False])
    watcher = PollingNetworkWatcher(probe=probe, interval=0.01)
    seen: list[bool] = []

    watcher.start(seen.append)
    await _wait_for(lambda: len(seen) >= 1)
    watcher.stop()
    count = len(seen)

    await asyncio.sleep(0.05)
    assert len(seen) == count
    assert not watcher.is_running


@pytest.mark.asyncio
async def test_probe_exception_counts_as_disconnected() -> None:
    def _broken() -> bool:
        raise OSError("no route")

    watcher = PollingNetworkWatcher(probe=_broken, interval=0.01)
    seen: list[bool] = []
    watcher.start(seen.append)
    try:
        await _wait_for(lambda: len(seen) >= 1)
    finally:
        watcher.stop()

    assert seen == [False]


def test_tcp_probe_unreachable_port_is_false() -> None:
    # Nothing listens on the discard port locally; the connect is refused.
    assert tcp_probe("127.0.0.1", 9, timeout=0.5) is False
