from __future__ import annotations

import asyncio
import json

import aiohttp
import pytest
from aiohttp import test_utils, web

from fishgate._transport import HttpResponse, HttpTransport
from fishgate.exceptions import FishgateTransportError


async def _echo(request: web.Request) -> web.Response:
    body = await request.text() if request.can_read_body else ""
    return web.json_response(
        {
            "method": request.method,
            "query": dict(request.query),
            "user_agent": request.headers.get("user-agent"),
            "content_type": request.headers.get("content-type"),
            "body": body,
        }
    )


async def _slow(_request: web.Request) -> web.Response:
    await asyncio.sleep(0.3)
    return web.json_response({})


async def _undecodable(_request: web.Request) -> web.Response:
    return web.Response(body=b"\xff\xfe", content_type="application/json", charset="utf-8")


async def _missing(_request: web.Request) -> web.Response:
    return web.Response(status=404, text="nope")


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/echo", _echo)
    app.router.add_post("/echo", _echo)
    app.router.add_get("/slow", _slow)
    app.router.add_get("/missing", _missing)
    app.router.add_get("/undecodable", _undecodable)
    app.router.add_post("/undecodable", _undecodable)
    return app


@pytest.mark.asyncio
async def test_get_sends_params_and_user_agent() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as http:
        transport = HttpTransport(http, user_agent="FishNotes/1.0")
        response = await transport.get(str(server.make_url("/echo")), params={"devkey": "k", "device_id": "d"})

    assert response.ok
    body = response.json()
    assert body["query"] == {"devkey": "k", "device_id": "d"}
    assert body["user_agent"] == "FishNotes/1.0"


@pytest.mark.asyncio
async def test_post_json_encodes_payload() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as http:
        transport = HttpTransport(http)
        response = await transport.post_json(str(server.make_url("/echo")), {"os": "iOS", "ok": True})

    body = response.json()
    assert body["method"] == "POST"
    assert body["content_type"] == "application/json"
    assert json.loads(body["body"]) == {"os": "iOS", "ok": True}


@pytest.mark.asyncio
async def test_non_2xx_is_returned_not_raised() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as http:
        response = await HttpTransport(http).get(str(server.make_url("/missing")))

    assert response.status == 404
    assert not response.ok


@pytest.mark.asyncio
async def test_timeout_is_wrapped() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as http:
        transport = HttpTransport(http, timeout=0.05)
        with pytest.raises(FishgateTransportError):
            await transport.get(str(server.make_url("/slow")))


@pytest.mark.asyncio
async def test_connection_error_is_wrapped() -> None:
    async with aiohttp.ClientSession() as http:
        with pytest.raises(FishgateTransportError):
            await HttpTransport(http, timeout=2.0).get("http://127.0.0.1:9/unreachable")


def test_invalid_json_raises_transport_error() -> None:
    response = HttpResponse(status=200, text="<html>", endpoint="/x")
    with pytest.raises(FishgateTransportError) as exc_info:
        response.json()
    assert exc_info.value.endpoint == "/x"


@pytest.mark.asyncio
async def test_undecodable_body_is_wrapped() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as http:
        transport = HttpTransport(http)
        url = str(server.make_url("/undecodable"))
        with pytest.raises(FishgateTransportError) as exc_info:
            await transport.get(url)
        assert exc_info.value.endpoint == url
        with pytest.raises(FishgateTransportError):
            await transport.post_json(url, {"os": "iOS"})
