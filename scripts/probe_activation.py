#!/usr/bin/env python3
"""Live activation probe.

Runs one full launch against the real flag store and destination backend
and prints where the gate lands. Configuration comes from ``FISHGATE_*``
environment variables (see ``GateConfig.from_env``).

Default behavior:
1) boot the coordinator with a persistent JSON store,
2) ingest the attribution payload given on the command line,
3) wait for a stable presentation state (or the boot timeout),
4) print the final snapshot as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import aiohttp

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fishgate import (  # noqa: E402
    ActivationCoordinator,
    ActivationStore,
    DestinationResolver,
    FishgateError,
    GateConfig,
    JsonFileKeyValueStore,
    PollingNetworkWatcher,
    PresentationSnapshot,
    PresentationState,
    RemoteFlagGateway,
)
from fishgate._transport import HttpTransport  # noqa: E402


class _FixedPermissionAuthority:
    def __init__(self, grant: bool) -> None:
        self._grant = grant

    async def request_authorization(self) -> bool:
        return self._grant

    def register_for_remote_notifications(self) -> None:
        print("[probe] would register for remote notifications", file=sys.stderr)


def _load_attribution(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    candidate = Path(raw)
    text = candidate.read_text(encoding="utf-8") if candidate.is_file() else raw
    data = json.loads(text)
    if not isinstance(data, dict):
        raise SystemExit("attribution must be a JSON object")
    return data


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--attribution", help="JSON object or path to a JSON file with conversion data")
    parser.add_argument("--deeplink", help="JSON object or path to a JSON file with deeplink data")
    parser.add_argument("--store", default=".fishgate-store.json", help="Persistent store file")
    parser.add_argument("--grant", action="store_true", help="Grant the permission prompt if it is raised")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> PresentationSnapshot:
    config = GateConfig.from_env()
    store = ActivationStore(JsonFileKeyValueStore(args.store))
    settled = asyncio.Event()

    def _on_snapshot(snapshot: PresentationSnapshot) -> None:
        if snapshot.state is not PresentationState.INITIALIZING:
            settled.set()

    async with aiohttp.ClientSession() as http:
        transport = HttpTransport(http, timeout=config.request_timeout, user_agent=config.device.user_agent)
        coordinator = ActivationCoordinator(
            config,
            store=store,
            gateway=RemoteFlagGateway(config, transport),
            resolver=DestinationResolver(config, transport, push_token_provider=store.get_push_token),
            watcher=PollingNetworkWatcher.for_host(
                config.network_probe_host,
                config.network_probe_port,
                interval=config.network_poll_interval,
            ),
            permissions=_FixedPermissionAuthority(args.grant),
        )
        coordinator.add_listener(_on_snapshot)
        async with coordinator:
            deeplink = _load_attribution(args.deeplink)
            if deeplink:
                coordinator.ingest_deeplink(deeplink)
            coordinator.ingest_attribution(_load_attribution(args.attribution))
            await settled.wait()
            await coordinator.wait_idle()
            if coordinator.requesting_permission and args.grant:
                await coordinator.grant_permission()
            elif coordinator.requesting_permission:
                coordinator.reject_permission()
            return coordinator.snapshot()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        snapshot = asyncio.run(_run(args))
    except FishgateError as exc:
        print(f"[probe] failed: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(snapshot.model_dump(mode="json"), indent=2))
    return 0 if snapshot.state is PresentationState.ACTIVE else 2


if __name__ == "__main__":
    raise SystemExit(main())
