"""Attribution fetch and destination resolution endpoints.

Endpoints:
  - ``<attribution_base_url>id<app id>?devkey=..&device_id=..``  (GET install data)
  - ``<resolve_url>``  (POST merged attribution + device metadata)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError
from yarl import URL

from fishgate._redact import redact_for_log
from fishgate._transport import Transport
from fishgate.config import GateConfig
from fishgate.exceptions import FishgateTransportError, InvalidDestinationError, MalformedURLError, ServerError
from fishgate.models.destination import DestinationResponse

_logger = logging.getLogger(__name__)


class DestinationResolver:
    """Talks to the attribution provider and the destination backend.

    Parameters
    ----------
    config : GateConfig
        Endpoint and device configuration.
    transport : Transport
        HTTP transport (timeouts are the transport's concern).
    push_token_provider : callable, optional
        Returns the current push registration token, if any.
    """

    def __init__(
        self,
        config: GateConfig,
        transport: Transport,
        *,
        push_token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._push_token_provider = push_token_provider

    def _attribution_url(self) -> str:
        try:
            base = URL(self._config.attribution_base_url + self._config.store_id)
        except (ValueError, TypeError) as exc:
            raise MalformedURLError(f"Cannot build attribution URL: {exc}") from exc
        if not base.is_absolute():
            raise MalformedURLError(f"Attribution URL is not absolute: {base}")
        return str(base)

    async def fetch_attribution(self, device_id: str) -> dict[str, Any]:
        """Fetch install attribution for *device_id*.

        Raises
        ------
        MalformedURLError
            The endpoint URL could not be constructed.
        ServerError
            The provider answered with a non-2xx status.
        FishgateTransportError
            Network failure, timeout, or a body that is not JSON.
        """
        url = self._attribution_url()
        params = {"devkey": self._config.attribution_dev_key, "device_id": device_id}
        response = await self._transport.get(url, params=params)
        if not response.ok:
            raise ServerError(
                f"HTTP {response.status} from attribution endpoint: {response.text[:200]}",
                status_code=response.status,
                endpoint=url,
            )
        data = response.json()
        if not isinstance(data, dict):
            return {}
        _logger.debug("Attribution payload %s", redact_for_log(data))
        return data

    def build_payload(self, attribution: dict[str, Any]) -> dict[str, Any]:
        """Merge device and platform metadata over the attribution fields."""
        device = self._config.device
        payload = dict(attribution)
        payload["os"] = device.os_name
        payload["af_id"] = device.device_id
        payload["bundle_id"] = self._config.bundle_id
        payload["firebase_project_id"] = self._config.project_id
        payload["store_id"] = self._config.store_id
        payload["push_token"] = self._push_token_provider() if self._push_token_provider is not None else None
        payload["locale"] = device.locale
        return payload

    async def resolve_destination(self, attribution: dict[str, Any]) -> str:
        """Ask the backend which destination this install should open.

        Raises
        ------
        InvalidDestinationError
            The body is not JSON, lacks ``ok``/``url``, or ``ok`` is false.
        FishgateTransportError
            Network failure or timeout.
        """
        payload = self.build_payload(attribution)
        _logger.debug("Resolving destination with %s", redact_for_log(payload))
        response = await self._transport.post_json(self._config.resolve_url, payload)

        try:
            body = response.json()
        except FishgateTransportError as exc:
            raise InvalidDestinationError(f"Destination response is not JSON (HTTP {response.status})") from exc

        try:
            parsed = DestinationResponse.model_validate(body)
        except ValidationError as exc:
            raise InvalidDestinationError(f"Malformed destination response: {exc.error_count()} error(s)") from exc

        if not parsed.ok or not parsed.url:
            raise InvalidDestinationError("Destination backend reported no destination")
        return parsed.url
