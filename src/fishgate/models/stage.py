"""Activation stages, the events that move them, and their UI projection."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StageKind(StrEnum):
    DORMANT = "dormant"
    STARTING = "starting"
    VERIFYING = "verifying"
    AUTHORIZED = "authorized"
    RUNNING = "running"
    PAUSED = "paused"
    OFFLINE = "offline"


_FINAL_KINDS: frozenset[StageKind] = frozenset({StageKind.RUNNING, StageKind.PAUSED})


class Stage(BaseModel):
    """The authoritative activation state.

    Only ``running`` carries a destination.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: StageKind
    destination: str | None = None

    @model_validator(mode="after")
    def _check_destination(self) -> Stage:
        if self.kind is StageKind.RUNNING and not self.destination:
            raise ValueError("running stage requires a destination")
        if self.kind is not StageKind.RUNNING and self.destination is not None:
            raise ValueError(f"{self.kind} stage cannot carry a destination")
        return self

    @classmethod
    def running(cls, destination: str) -> Stage:
        return cls(kind=StageKind.RUNNING, destination=destination)

    @property
    def is_final(self) -> bool:
        """Whether connectivity and timeout events no longer apply."""
        return self.kind in _FINAL_KINDS

    def __str__(self) -> str:
        if self.kind is StageKind.RUNNING:
            return f"running({self.destination})"
        return str(self.kind)


DORMANT = Stage(kind=StageKind.DORMANT)
STARTING = Stage(kind=StageKind.STARTING)
VERIFYING = Stage(kind=StageKind.VERIFYING)
AUTHORIZED = Stage(kind=StageKind.AUTHORIZED)
PAUSED = Stage(kind=StageKind.PAUSED)
OFFLINE = Stage(kind=StageKind.OFFLINE)


class EventType(StrEnum):
    BOOT = "boot"
    DATA_INGESTED = "dataIngested"
    VALIDATION_PASSED = "validationPassed"
    VALIDATION_REJECTED = "validationRejected"
    DESTINATION_FOUND = "destinationFound"
    CONNECTIVITY_LOST = "connectivityLost"
    CONNECTIVITY_RESTORED = "connectivityRestored"
    TIMEOUT = "timeout"


class Event(BaseModel):
    """An input signal for the stage machine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: EventType
    payload: dict[str, Any] = Field(default_factory=dict, description="Attribution data for dataIngested")
    destination: str | None = Field(default=None, description="Resolved URL for destinationFound")

    @classmethod
    def boot(cls) -> Event:
        return cls(type=EventType.BOOT)

    @classmethod
    def data_ingested(cls, payload: dict[str, Any]) -> Event:
        return cls(type=EventType.DATA_INGESTED, payload=dict(payload))

    @classmethod
    def validation_passed(cls) -> Event:
        return cls(type=EventType.VALIDATION_PASSED)

    @classmethod
    def validation_rejected(cls) -> Event:
        return cls(type=EventType.VALIDATION_REJECTED)

    @classmethod
    def destination_found(cls, destination: str) -> Event:
        return cls(type=EventType.DESTINATION_FOUND, destination=destination)

    @classmethod
    def connectivity_lost(cls) -> Event:
        return cls(type=EventType.CONNECTIVITY_LOST)

    @classmethod
    def connectivity_restored(cls) -> Event:
        return cls(type=EventType.CONNECTIVITY_RESTORED)

    @classmethod
    def timeout(cls) -> Event:
        return cls(type=EventType.TIMEOUT)


class PresentationState(StrEnum):
    """Coarse UI-facing view of :class:`Stage`."""

    INITIALIZING = "initializing"
    ACTIVE = "active"
    STANDBY = "standby"
    DISCONNECTED = "disconnected"


_PRESENTATION: dict[StageKind, PresentationState] = {
    StageKind.DORMANT: PresentationState.INITIALIZING,
    StageKind.STARTING: PresentationState.INITIALIZING,
    StageKind.VERIFYING: PresentationState.INITIALIZING,
    StageKind.AUTHORIZED: PresentationState.INITIALIZING,
    StageKind.RUNNING: PresentationState.ACTIVE,
    StageKind.PAUSED: PresentationState.STANDBY,
    StageKind.OFFLINE: PresentationState.DISCONNECTED,
}


def present(stage: Stage) -> PresentationState:
    """Project a stage onto the presentation state shown to the user."""
    return _PRESENTATION[stage.kind]
