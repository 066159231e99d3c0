"""Event-driven activation stage machine.

Events are applied strictly in emission order. Each one is mapped through
the pure :func:`transition` function against the stage that is current when
the event is dequeued, and a resulting new stage is published to every
subscriber before the next event is looked at.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable

from fishgate.models.stage import (
    AUTHORIZED,
    DORMANT,
    OFFLINE,
    PAUSED,
    STARTING,
    VERIFYING,
    Event,
    EventType,
    Stage,
    StageKind,
)

_logger = logging.getLogger(__name__)

StageSubscriber = Callable[[Stage], None]


def transition(stage: Stage, event: Event) -> Stage | None:
    """Return the stage *event* leads to from *stage*, or ``None`` for no change."""
    kind = stage.kind
    etype = event.type

    if kind is StageKind.DORMANT and etype is EventType.BOOT:
        return STARTING
    if kind is StageKind.STARTING and etype is EventType.DATA_INGESTED:
        return VERIFYING
    if kind is StageKind.VERIFYING and etype is EventType.VALIDATION_PASSED:
        return AUTHORIZED
    if kind is StageKind.VERIFYING and etype is EventType.VALIDATION_REJECTED:
        return PAUSED
    if kind is StageKind.AUTHORIZED and etype is EventType.DESTINATION_FOUND and event.destination:
        return Stage.running(event.destination)
    if etype is EventType.CONNECTIVITY_LOST and not stage.is_final:
        # Applies to offline too; subscribers see offline re-published.
        return OFFLINE
    if kind is StageKind.OFFLINE and etype is EventType.CONNECTIVITY_RESTORED:
        return PAUSED
    if etype is EventType.TIMEOUT and not stage.is_final:
        return PAUSED
    return None


class StageMachine:
    """Serialized stage transducer with a replaying current-value subscription.

    ``emit`` may be called from any thread and from inside a subscriber;
    whichever caller finds the queue idle drains it, so transitions and
    notifications never interleave.
    """

    def __init__(self, initial: Stage = DORMANT) -> None:
        self._stage = initial
        self._pending: deque[Event] = deque()
        self._draining = False
        self._mutex = threading.Lock()
        self._subscribers: list[StageSubscriber] = []

    @property
    def stage(self) -> Stage:
        """The latest published stage."""
        return self._stage

    def subscribe(self, callback: StageSubscriber) -> Callable[[], None]:
        """Register *callback* and immediately replay the current stage to it.

        Returns a callable that removes the subscription.
        """
        self._subscribers.append(callback)
        self._notify(callback, self._stage)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, event: Event) -> None:
        """Queue *event* and process it unless another caller is draining."""
        with self._mutex:
            self._pending.append(event)
            if self._draining:
                return
            self._draining = True
        self._drain()

    def _drain(self) -> None:
        while True:
            with self._mutex:
                if not self._pending:
                    self._draining = False
                    return
                event = self._pending.popleft()

            next_stage = transition(self._stage, event)
            if next_stage is None:
                _logger.debug("Event %s ignored in stage %s", event.type, self._stage)
                continue

            _logger.debug("Stage %s -> %s on %s", self._stage, next_stage, event.type)
            self._stage = next_stage
            for callback in list(self._subscribers):
                self._notify(callback, next_stage)

    @staticmethod
    def _notify(callback: StageSubscriber, stage: Stage) -> None:
        try:
            callback(stage)
        except Exception:
            _logger.warning("Stage subscriber failed for %s", stage, exc_info=True)
