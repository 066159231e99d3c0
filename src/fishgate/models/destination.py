"""Destination lookup response and the snapshot handed to the UI layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr

from fishgate.models.stage import PresentationState


class DestinationResponse(BaseModel):
    """Body returned by the destination resolution endpoint.

    The backend answers ``{"ok": true, "url": "https://..."}``. Both
    fields are required and strictly typed; anything else is treated as
    an invalid destination by the resolver.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    ok: StrictBool
    url: StrictStr


class PresentationSnapshot(BaseModel):
    """What the presentation layer renders at a given moment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    state: PresentationState = PresentationState.INITIALIZING
    destination: str | None = None
    requesting_permission: bool = False
