"""Client configuration for fishgate."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fishgate._constants import (
    ATTRIBUTION_BASE_URL,
    DEFAULT_BOOT_TIMEOUT,
    DEFAULT_FIRST_RUN_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_USER_AGENT,
    FLAG_PATH,
    PERMISSION_COOLDOWN_SECONDS,
    RESOLVE_URL,
)
from fishgate.exceptions import FishgateConfigError


@dataclasses.dataclass(frozen=True)
class DeviceProfile:
    """Device identity fields sent with the destination lookup.

    These correspond to the platform metadata the resolution backend
    expects next to the attribution fields.
    """

    os_name: str = "iOS"
    device_id: str = ""
    locale: str = "EN"
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        # Only the language prefix is sent, uppercased ("en-GB" -> "EN").
        code = self.locale.strip()[:2].upper() or "EN"
        object.__setattr__(self, "locale", code)


@dataclasses.dataclass(frozen=True)
class GateConfig:
    """Activation gate configuration.

    Parameters
    ----------
    attribution_app_id : str
        Numeric store identifier of the app at the attribution provider.
    attribution_dev_key : str
        Developer key for the attribution install-data endpoint.
    bundle_id : str
        Application bundle identifier sent with destination lookups.
    flag_store_url : str
        Base URL of the remote flag store (REST interface).
    flag_path : str
        Path of the flag that gates activation.
    attribution_base_url : str
        Install-data endpoint prefix; the app id is appended.
    resolve_url : str
        Destination resolution endpoint.
    project_id : str or None
        Messaging project identifier forwarded as ``firebase_project_id``.
    request_timeout : float
        Seconds before an HTTP round trip is abandoned.
    boot_timeout : float
        Seconds after boot before the gate is forced to ``paused``.
    first_run_delay : float
        Seconds to wait before re-fetching attribution on an organic first run.
    permission_cooldown : float
        Seconds a dismissed permission prompt stays suppressed.
    network_probe_host : str
        Host used by the polling connectivity watcher.
    network_probe_port : int
        TCP port used by the polling connectivity watcher.
    network_poll_interval : float
        Seconds between connectivity probes.
    device : DeviceProfile
        Device identity fields.
    """

    attribution_app_id: str
    attribution_dev_key: str
    bundle_id: str
    flag_store_url: str = ""
    flag_path: str = FLAG_PATH
    attribution_base_url: str = ATTRIBUTION_BASE_URL
    resolve_url: str = RESOLVE_URL
    project_id: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    boot_timeout: float = DEFAULT_BOOT_TIMEOUT
    first_run_delay: float = DEFAULT_FIRST_RUN_DELAY
    permission_cooldown: float = PERMISSION_COOLDOWN_SECONDS
    network_probe_host: str = "1.1.1.1"
    network_probe_port: int = 53
    network_poll_interval: float = 2.0
    device: DeviceProfile = dataclasses.field(default_factory=DeviceProfile)

    def __post_init__(self) -> None:
        for name in ("request_timeout", "boot_timeout", "network_poll_interval"):
            if getattr(self, name) <= 0:
                raise FishgateConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.first_run_delay < 0:
            raise FishgateConfigError(f"first_run_delay must not be negative, got {self.first_run_delay}")
        if not self.resolve_url.strip():
            raise FishgateConfigError("resolve_url must be non-empty")
        if not self.attribution_base_url.strip():
            raise FishgateConfigError("attribution_base_url must be non-empty")

    @property
    def store_id(self) -> str:
        """Store identifier in the ``id<app id>`` form the backends use."""
        return f"id{self.attribution_app_id}"

    @classmethod
    def from_env(cls, **overrides: Any) -> GateConfig:
        """Create configuration from environment variables.

        Reads ``FISHGATE_APP_ID``, ``FISHGATE_DEV_KEY``, ``FISHGATE_BUNDLE_ID``
        and optional ``FISHGATE_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        GateConfig
            Populated configuration.
        """
        env = os.environ

        device_kwargs: dict[str, str] = {}
        _ENV_DEVICE_MAP = {
            "FISHGATE_OS_NAME": "os_name",
            "FISHGATE_DEVICE_ID": "device_id",
            "FISHGATE_LOCALE": "locale",
            "FISHGATE_USER_AGENT": "user_agent",
        }
        for env_key, field_name in _ENV_DEVICE_MAP.items():
            val = env.get(env_key)
            if val is not None:
                device_kwargs[field_name] = val

        device_overrides = overrides.pop("device", None)
        if isinstance(device_overrides, dict):
            device_kwargs.update(device_overrides)
        elif isinstance(device_overrides, DeviceProfile):
            device_kwargs = dataclasses.asdict(device_overrides)

        device = DeviceProfile(**device_kwargs) if device_kwargs else DeviceProfile()

        _ENV_CONFIG_MAP = {
            "FISHGATE_APP_ID": "attribution_app_id",
            "FISHGATE_DEV_KEY": "attribution_dev_key",
            "FISHGATE_BUNDLE_ID": "bundle_id",
            "FISHGATE_FLAG_STORE_URL": "flag_store_url",
            "FISHGATE_FLAG_PATH": "flag_path",
            "FISHGATE_ATTRIBUTION_BASE_URL": "attribution_base_url",
            "FISHGATE_RESOLVE_URL": "resolve_url",
            "FISHGATE_PROJECT_ID": "project_id",
            "FISHGATE_NETWORK_PROBE_HOST": "network_probe_host",
        }
        config_kwargs: dict[str, Any] = {"device": device}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "FISHGATE_REQUEST_TIMEOUT": "request_timeout",
            "FISHGATE_BOOT_TIMEOUT": "boot_timeout",
            "FISHGATE_FIRST_RUN_DELAY": "first_run_delay",
            "FISHGATE_PERMISSION_COOLDOWN": "permission_cooldown",
            "FISHGATE_NETWORK_POLL_INTERVAL": "network_poll_interval",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise FishgateConfigError(f"{env_key} must be numeric, got {val!r}") from exc

        port_env = env.get("FISHGATE_NETWORK_PROBE_PORT")
        if port_env is not None and "network_probe_port" not in overrides:
            config_kwargs["network_probe_port"] = int(port_env)

        config_kwargs.update(overrides)

        for required in ("attribution_app_id", "attribution_dev_key", "bundle_id"):
            if not config_kwargs.get(required):
                raise FishgateConfigError(f"Missing required setting {required!r}")

        return cls(**config_kwargs)
