from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from fishgate._transport import HttpResponse
from fishgate.config import DeviceProfile, GateConfig
from fishgate.exceptions import FishgateTransportError, InvalidDestinationError, MalformedURLError, ServerError
from fishgate.resolver import DestinationResolver


@dataclass
class _RecordingTransport:
    get_response: HttpResponse = field(default_factory=lambda: HttpResponse(200, "{}"))
    post_response: HttpResponse = field(default_factory=lambda: HttpResponse(200, "{}"))
    gets: list[tuple[str, dict[str, str]]] = field(default_factory=list)
    posts: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def get(self, url: str, *, params: Mapping[str, str] | None = None) -> HttpResponse:
        self.gets.append((url, dict(params or {})))
        return self.get_response

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> HttpResponse:
        self.posts.append((url, dict(payload)))
        return self.post_response


def _config(**overrides: Any) -> GateConfig:
    values: dict[str, Any] = {
        "attribution_app_id": "6757920328",
        "attribution_dev_key": "DEVKEY",
        "bundle_id": "com.example.fishnotes",
        "project_id": "sender-1",
        "device": DeviceProfile(device_id="device-1", locale="de-AT"),
    }
    values.update(overrides)
    return GateConfig(**values)


@pytest.mark.asyncio
async def test_fetch_attribution_sends_dev_key_and_device_id() -> None:
    transport = _RecordingTransport(get_response=HttpResponse(200, json.dumps({"af_status": "Non-organic"})))
    resolver = DestinationResolver(_config(), transport)

    data = await resolver.fetch_attribution("device-1")

    assert data == {"af_status": "Non-organic"}
    url, params = transport.gets[0]
    assert url == "https://gcdsdk.appsflyer.com/install_data/v4.0/id6757920328"
    assert params == {"devkey": "DEVKEY", "device_id": "device-1"}


@pytest.mark.asyncio
async def test_fetch_attribution_non_2xx_is_server_error() -> None:
    transport = _RecordingTransport(get_response=HttpResponse(404, "not found", endpoint="x"))
    resolver = DestinationResolver(_config(), transport)

    with pytest.raises(ServerError) as exc_info:
        await resolver.fetch_attribution("device-1")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_fetch_attribution_non_object_body_is_empty() -> None:
    transport = _RecordingTransport(get_response=HttpResponse(200, "[1, 2]"))
    resolver = DestinationResolver(_config(), transport)

    assert await resolver.fetch_attribution("device-1") == {}


@pytest.mark.asyncio
async def test_fetch_attribution_invalid_json_is_transport_error() -> None:
    transport = _RecordingTransport(get_response=HttpResponse(200, "<html>"))
    resolver = DestinationResolver(_config(), transport)

    with pytest.raises(FishgateTransportError):
        await resolver.fetch_attribution("device-1")


@pytest.mark.asyncio
async def test_relative_attribution_base_is_malformed() -> None:
    resolver = DestinationResolver(_config(attribution_base_url="install_data/"), _RecordingTransport())

    with pytest.raises(MalformedURLError):
        await resolver.fetch_attribution("device-1")


@pytest.mark.asyncio
async def test_resolve_destination_posts_merged_payload() -> None:
    transport = _RecordingTransport(
        post_response=HttpResponse(200, json.dumps({"ok": True, "url": "https://dest.example/path"}))
    )
    resolver = DestinationResolver(_config(), transport, push_token_provider=lambda: "push-123")

    destination = await resolver.resolve_destination({"af_status": "Non-organic", "os": "ignored"})

    assert destination == "https://dest.example/path"
    url, payload = transport.posts[0]
    assert url == "https://dailynotesplus.com/config.php"
    assert payload == {
        "af_status": "Non-organic",
        "os": "iOS",
        "af_id": "device-1",
        "bundle_id": "com.example.fishnotes",
        "firebase_project_id": "sender-1",
        "store_id": "id6757920328",
        "push_token": "push-123",
        "locale": "DE",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        json.dumps({"ok": False, "url": "https://dest.example"}),
        json.dumps({"ok": True}),
        json.dumps({"url": "https://dest.example"}),
        json.dumps({"ok": "true", "url": "https://dest.example"}),
        json.dumps({"ok": True, "url": 5}),
        json.dumps(["ok"]),
        "not json",
    ],
)
async def test_resolve_destination_rejects_bad_bodies(body: str) -> None:
    transport = _RecordingTransport(post_response=HttpResponse(200, body))
    resolver = DestinationResolver(_config(), transport)

    with pytest.raises(InvalidDestinationError):
        await resolver.resolve_destination({"a": 1})


@pytest.mark.asyncio
async def test_resolve_destination_ignores_status_code_when_body_is_valid() -> None:
    transport = _RecordingTransport(post_response=HttpResponse(500, json.dumps({"ok": True, "url": "https://d.example"})))
    resolver = DestinationResolver(_config(), transport)

    assert await resolver.resolve_destination({}) == "https://d.example"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"ok": True, "url": "https://a.example"},
        {"ok": True, "url": "https://a.example", "raw": "x"},
        {"ok": True, "url": "https://a.example", "ttl": 3600, "meta": {"v": 2}},
    ],
)
async def test_resolve_destination_accepts_extra_keys(body: dict[str, Any]) -> None:
    transport = _RecordingTransport(post_response=HttpResponse(200, json.dumps(body)))
    resolver = DestinationResolver(_config(), transport)

    assert await resolver.resolve_destination({}) == "https://a.example"
