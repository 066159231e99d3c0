"""Remote flag validation gateway.

The gateway reads a single well-known path from the remote flag store's
REST interface (``<flag_store_url>/<flag_path>.json``). Activation is
allowed only when that value is a non-empty, well-formed absolute URL.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from yarl import URL

from fishgate._transport import Transport
from fishgate.config import GateConfig
from fishgate.exceptions import AccessDeniedError, FishgateConfigError, FishgateTransportError, GatewayFailureError

_logger = logging.getLogger(__name__)

_DENIED_STATUSES: frozenset[int] = frozenset({401, 403})


class ValidationGateway(Protocol):
    async def check_access(self) -> bool:
        ...


def is_absolute_url(value: Any) -> bool:
    """Return ``True`` for a non-empty string that parses as an absolute URL with a host."""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        url = URL(value.strip())
    except (ValueError, TypeError):
        return False
    return url.is_absolute() and bool(url.scheme) and bool(url.host)


class RemoteFlagGateway:
    """Validation gateway backed by the flag store's REST interface."""

    def __init__(self, config: GateConfig, transport: Transport) -> None:
        if not config.flag_store_url.strip():
            raise FishgateConfigError("flag_store_url is required for the remote flag gateway")
        self._url = f"{config.flag_store_url.rstrip('/')}/{config.flag_path.strip('/')}.json"
        self._transport = transport

    async def check_access(self) -> bool:
        """Read the flag once.

        Returns
        -------
        bool
            ``True`` iff the flag holds a well-formed absolute URL.

        Raises
        ------
        AccessDeniedError
            The flag store refused the read.
        GatewayFailureError
            The read failed or the body was not JSON.
        """
        try:
            response = await self._transport.get(self._url)
            if response.status in _DENIED_STATUSES:
                raise AccessDeniedError(f"Flag store denied read of {self._url} (HTTP {response.status})")
            if not response.ok:
                raise GatewayFailureError(f"Flag store returned HTTP {response.status} for {self._url}")
            value = response.json()
        except FishgateTransportError as exc:
            raise GatewayFailureError(f"Flag lookup failed: {exc}") from exc

        allowed = is_absolute_url(value)
        _logger.debug("Flag lookup %s -> %s", self._url, allowed)
        return allowed
