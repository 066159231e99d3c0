"""Data models for the activation gate."""

from fishgate.models.destination import DestinationResponse, PresentationSnapshot
from fishgate.models.stage import (
    AUTHORIZED,
    DORMANT,
    OFFLINE,
    PAUSED,
    STARTING,
    VERIFYING,
    Event,
    EventType,
    PresentationState,
    Stage,
    StageKind,
    present,
)

__all__ = [
    "AUTHORIZED",
    "DORMANT",
    "DestinationResponse",
    "Event",
    "EventType",
    "OFFLINE",
    "PAUSED",
    "PresentationSnapshot",
    "PresentationState",
    "STARTING",
    "Stage",
    "StageKind",
    "VERIFYING",
    "present",
]
