"""JSON-over-HTTP transport built on aiohttp."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from fishgate._constants import DEFAULT_REQUEST_TIMEOUT
from fishgate.exceptions import FishgateTransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status code and body text of a completed request."""

    status: int
    text: str
    endpoint: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body, raising :class:`FishgateTransportError` if it is not JSON."""
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as exc:
            raise FishgateTransportError(
                f"Invalid JSON from {self.endpoint}: {self.text[:200]}",
                status_code=self.status,
                endpoint=self.endpoint,
            ) from exc


class Transport(Protocol):
    """Structural transport interface used by the gateway and resolver.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> HttpResponse:
        ...

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> HttpResponse:
        ...


class HttpTransport:
    """aiohttp transport with a per-request timeout and fixed User-Agent."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        user_agent: str = "",
    ) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._user_agent = user_agent

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers: dict[str, str] = {"accept": "application/json"}
        if self._user_agent:
            headers["user-agent"] = self._user_agent
        if extra:
            headers.update(extra)
        return headers

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> HttpResponse:
        _logger.debug("GET %s", url)
        return await self._request("GET", url, params=params, headers=self._headers())

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> HttpResponse:
        _logger.debug("POST %s", url)
        body = json.dumps(payload, separators=(",", ":"), default=str)
        headers = self._headers({"content-type": "application/json"})
        return await self._request("POST", url, data=body, headers=headers)

    async def _request(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        try:
            async with self._http.request(method, url, timeout=self._timeout, **kwargs) as resp:
                text = await resp.text()
                return HttpResponse(status=resp.status, text=text, endpoint=url)
        except UnicodeDecodeError as exc:
            raise FishgateTransportError(f"Undecodable response body from {url}", endpoint=url) from exc
        except TimeoutError as exc:
            raise FishgateTransportError(f"Request to {url} timed out", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise FishgateTransportError(f"Request to {url} failed: {exc}", endpoint=url) from exc
