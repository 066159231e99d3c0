from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import pytest

from fishgate._transport import HttpResponse
from fishgate.config import GateConfig
from fishgate.exceptions import AccessDeniedError, FishgateConfigError, FishgateTransportError, GatewayFailureError
from fishgate.gateway import RemoteFlagGateway, is_absolute_url


class _FlagTransport:
    def __init__(self, response: HttpResponse | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.urls: list[str] = []

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> HttpResponse:
        self.urls.append(url)
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> HttpResponse:  # pragma: no cover
        raise AssertionError("gateway never posts")


def _config() -> GateConfig:
    return GateConfig(
        attribution_app_id="1",
        attribution_dev_key="k",
        bundle_id="b",
        flag_store_url="https://flags.example.firebaseio.com/",
    )


def _flag(value: Any) -> HttpResponse:
    return HttpResponse(200, json.dumps(value))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("https://dest.example/landing", True),
        ("http://dest.example", True),
        ("", False),
        ("   ", False),
        ("not a url", False),
        ("/relative/path", False),
        ("https://", False),
        (None, False),
        (42, False),
        ({"url": "https://dest.example"}, False),
    ],
)
def test_is_absolute_url(value: Any, expected: bool) -> None:
    assert is_absolute_url(value) is expected


@pytest.mark.asyncio
async def test_check_access_reads_flag_path() -> None:
    transport = _FlagTransport(_flag("https://dest.example"))
    gateway = RemoteFlagGateway(_config(), transport)

    assert await gateway.check_access() is True
    assert transport.urls == ["https://flags.example.firebaseio.com/users/log/data.json"]


@pytest.mark.asyncio
async def test_missing_flag_is_false() -> None:
    gateway = RemoteFlagGateway(_config(), _FlagTransport(_flag(None)))
    assert await gateway.check_access() is False


@pytest.mark.asyncio
async def test_denied_read_raises_access_denied() -> None:
    gateway = RemoteFlagGateway(_config(), _FlagTransport(HttpResponse(401, '{"error": "Permission denied"}')))
    with pytest.raises(AccessDeniedError):
        await gateway.check_access()


@pytest.mark.asyncio
async def test_server_failure_raises_gateway_failure() -> None:
    gateway = RemoteFlagGateway(_config(), _FlagTransport(HttpResponse(503, "unavailable")))
    with pytest.raises(GatewayFailureError):
        await gateway.check_access()


@pytest.mark.asyncio
async def test_network_error_raises_gateway_failure() -> None:
    gateway = RemoteFlagGateway(_config(), _FlagTransport(error=FishgateTransportError("boom")))
    with pytest.raises(GatewayFailureError):
        await gateway.check_access()


@pytest.mark.asyncio
async def test_non_json_body_raises_gateway_failure() -> None:
    gateway = RemoteFlagGateway(_config(), _FlagTransport(HttpResponse(200, "<html>")))
    with pytest.raises(GatewayFailureError):
        await gateway.check_access()


def test_flag_store_url_required() -> None:
    config = GateConfig(attribution_app_id="1", attribution_dev_key="k", bundle_id="b")
    with pytest.raises(FishgateConfigError):
        RemoteFlagGateway(config, _FlagTransport())
