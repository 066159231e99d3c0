"""Activation coordinator.

Owns the stage machine and wires the validation gateway, destination
resolver, network watcher and boot timeout into it. Once a destination is
running the coordinator locks and discards every further stage, network
and timeout callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from fishgate._constants import STATUS_ACTIVE, STATUS_INACTIVE
from fishgate._redact import redact_for_log
from fishgate.config import GateConfig
from fishgate.exceptions import FishgateError
from fishgate.gateway import ValidationGateway
from fishgate.models.destination import PresentationSnapshot
from fishgate.models.stage import Event, PresentationState, Stage, StageKind, present
from fishgate.network import NetworkWatcher
from fishgate.notifications import PermissionAuthority
from fishgate.resolver import DestinationResolver
from fishgate.state.machine import StageMachine
from fishgate.state.policy import is_first_run_organic, merge_attribution, should_show_permission_request
from fishgate.state.store import ActivationStore

_logger = logging.getLogger(__name__)

PresentationListener = Callable[[PresentationSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ActivationCoordinator:
    """Drives application activation at launch.

    Usage::

        async with ActivationCoordinator(config, store=..., gateway=..., ...) as coordinator:
            coordinator.ingest_attribution(conversion_data)
            ...
    """

    def __init__(
        self,
        config: GateConfig,
        *,
        store: ActivationStore,
        gateway: ValidationGateway,
        resolver: DestinationResolver,
        watcher: NetworkWatcher,
        permissions: PermissionAuthority,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._gateway = gateway
        self._resolver = resolver
        self._watcher = watcher
        self._permissions = permissions
        self._clock = clock

        self._machine = StageMachine()
        self._presentation_state = PresentationState.INITIALIZING
        self._endpoint: str | None = None
        self._requesting_permission = False
        self._locked = False
        self._started = False

        self._timeout_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._listeners: list[PresentationListener] = []

        self._machine.subscribe(self._handle_stage_transition)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ActivationCoordinator:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def start(self) -> None:
        """Start monitoring, emit ``boot`` and arm the boot timeout.

        Must be called from a running event loop.
        """
        if self._started:
            return
        loop = asyncio.get_running_loop()
        self._started = True
        self._watcher.start(self._handle_connectivity_change)
        self._machine.emit(Event.boot())
        self._timeout_handle = loop.call_later(self._config.boot_timeout, self._handle_boot_timeout)

    async def close(self) -> None:
        """Stop the watcher, disarm the timer and cancel pending flows."""
        self._watcher.stop()
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def wait_idle(self) -> None:
        """Wait until every validation flow started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def stage(self) -> Stage:
        return self._machine.stage

    @property
    def presentation_state(self) -> PresentationState:
        return self._presentation_state

    @property
    def endpoint(self) -> str | None:
        return self._endpoint

    @property
    def requesting_permission(self) -> bool:
        return self._requesting_permission

    @property
    def is_locked(self) -> bool:
        return self._locked

    def snapshot(self) -> PresentationSnapshot:
        return PresentationSnapshot(
            state=self._presentation_state,
            destination=self._endpoint,
            requesting_permission=self._requesting_permission,
        )

    def add_listener(self, listener: PresentationListener) -> Callable[[], None]:
        """Register *listener*, replay the current snapshot, return an unsubscriber."""
        self._listeners.append(listener)
        self._call_listener(listener, self.snapshot())

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            self._call_listener(listener, snapshot)

    @staticmethod
    def _call_listener(listener: PresentationListener, snapshot: PresentationSnapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            _logger.warning("Presentation listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def ingest_attribution(self, attribution: dict[str, Any]) -> None:
        """Store conversion data, emit ``dataIngested`` and start validation."""
        _logger.debug("Attribution ingested %s", redact_for_log(attribution))
        self._store.store_attribution(attribution)
        self._machine.emit(Event.data_ingested(attribution))
        self._spawn(self._execute_validation_flow())

    def ingest_deeplink(self, deeplink: dict[str, Any]) -> None:
        """Store deeplink data for a later merge; no stage effect."""
        self._store.store_deeplink(deeplink)

    async def grant_permission(self) -> bool:
        """Request notification permission and record the outcome."""
        granted = await self._permissions.request_authorization()
        self._store.save_permission_state(granted=granted, denied=not granted)
        if granted:
            self._permissions.register_for_remote_notifications()
        self._requesting_permission = False
        self._publish()
        self._finalize_activation()
        return granted

    def reject_permission(self) -> None:
        """Record a dismissal of the permission prompt."""
        self._store.record_permission_dismissal(self._clock())
        self._requesting_permission = False
        self._publish()
        self._finalize_activation()

    def _finalize_activation(self) -> None:
        # Stage transitions are committed before permission is resolved.
        _logger.debug("Permission flow resolved in stage %s", self._machine.stage)

    # ------------------------------------------------------------------
    # Stage / connectivity / timeout callbacks
    # ------------------------------------------------------------------

    def _handle_stage_transition(self, stage: Stage) -> None:
        if self._locked:
            return

        self._presentation_state = present(stage)
        if stage.kind is StageKind.RUNNING:
            self._endpoint = stage.destination
            self._locked = True
            _logger.debug("Activation locked on %s", stage.destination)
        self._publish()

    def _handle_connectivity_change(self, connected: bool) -> None:
        if self._locked:
            return
        self._machine.emit(Event.connectivity_restored() if connected else Event.connectivity_lost())

    def _handle_boot_timeout(self) -> None:
        self._timeout_handle = None
        if self._locked:
            return
        _logger.debug("Boot timeout fired in stage %s", self._machine.stage)
        self._machine.emit(Event.timeout())

    # ------------------------------------------------------------------
    # Validation / resolution flow
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute_validation_flow(self) -> None:
        try:
            has_access = await self._gateway.check_access()
        except FishgateError as exc:
            # Lookup errors and a negative flag both reject.
            _logger.warning("Validation check failed: %s", exc)
            has_access = False

        if not has_access:
            self._machine.emit(Event.validation_rejected())
            return

        self._machine.emit(Event.validation_passed())
        await self._continue_flow()

    async def _continue_flow(self) -> None:
        temporary = self._store.take_temporary_destination()
        if temporary is not None:
            self._activate(temporary)
            return

        attribution = self._store.get_attribution()
        if not attribution:
            self._load_cached_destination()
            return

        if self._store.get_status() == STATUS_INACTIVE:
            self._machine.emit(Event.timeout())
            return

        if is_first_run_organic(first_launch=self._store.is_first_launch(), attribution=attribution):
            await self._execute_first_run_flow()
            return

        await self._resolve_destination()

    async def _execute_first_run_flow(self) -> None:
        await asyncio.sleep(self._config.first_run_delay)
        try:
            fetched = await self._resolver.fetch_attribution(self._config.device.device_id)
        except FishgateError as exc:
            _logger.warning("First-run attribution fetch failed: %s", exc)
            self._machine.emit(Event.timeout())
            return

        self._store.store_attribution(merge_attribution(fetched, self._store.get_deeplink()))
        await self._resolve_destination()

    async def _resolve_destination(self) -> None:
        try:
            destination = await self._resolver.resolve_destination(self._store.get_attribution())
        except FishgateError as exc:
            _logger.warning("Destination resolution failed, using cache: %s", exc)
            self._load_cached_destination()
            return

        try:
            self._store.cache_destination(destination)
            self._store.set_status(STATUS_ACTIVE)
            self._store.mark_first_launch_complete()
        except FishgateError as exc:
            _logger.warning("Could not persist resolved destination: %s", exc)
        self._activate(destination)

    def _load_cached_destination(self) -> None:
        cached = self._store.get_cached_destination()
        if cached is not None:
            self._activate(cached)
        else:
            self._machine.emit(Event.timeout())

    def _activate(self, destination: str) -> None:
        if self._locked:
            return

        self._machine.emit(Event.destination_found(destination))

        if self._locked and self._should_show_permission_request():
            self._requesting_permission = True
            self._publish()

    def _should_show_permission_request(self) -> bool:
        return should_show_permission_request(
            granted=self._store.was_permission_granted(),
            denied=self._store.was_permission_denied(),
            last_request=self._store.get_last_permission_request(),
            now=self._clock(),
            cooldown_seconds=self._config.permission_cooldown,
        )
