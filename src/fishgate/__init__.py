"""fishgate - Async activation gate for attribution-driven remote content."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fishgate")
except PackageNotFoundError:
    __version__ = "0+local"
from fishgate.bridge import SdkBridge
from fishgate.config import DeviceProfile, GateConfig
from fishgate.coordinator import ActivationCoordinator
from fishgate.exceptions import (
    AccessDeniedError,
    FishgateConfigError,
    FishgateError,
    FishgateTransportError,
    GatewayFailureError,
    InvalidDestinationError,
    MalformedURLError,
    ServerError,
    ValidationGatewayError,
)
from fishgate.gateway import RemoteFlagGateway, ValidationGateway
from fishgate.models import (
    Event,
    EventType,
    PresentationSnapshot,
    PresentationState,
    Stage,
    StageKind,
    present,
)
from fishgate.network import NetworkWatcher, PollingNetworkWatcher
from fishgate.notifications import PermissionAuthority
from fishgate.resolver import DestinationResolver
from fishgate.state.machine import StageMachine, transition
from fishgate.state.store import ActivationStore, InMemoryKeyValueStore, JsonFileKeyValueStore

__all__ = [
    "__version__",
    "AccessDeniedError",
    "ActivationCoordinator",
    "ActivationStore",
    "DestinationResolver",
    "DeviceProfile",
    "Event",
    "EventType",
    "FishgateConfigError",
    "FishgateError",
    "FishgateTransportError",
    "GateConfig",
    "GatewayFailureError",
    "InMemoryKeyValueStore",
    "InvalidDestinationError",
    "JsonFileKeyValueStore",
    "MalformedURLError",
    "NetworkWatcher",
    "PermissionAuthority",
    "PollingNetworkWatcher",
    "PresentationSnapshot",
    "PresentationState",
    "RemoteFlagGateway",
    "SdkBridge",
    "ServerError",
    "Stage",
    "StageKind",
    "StageMachine",
    "ValidationGateway",
    "present",
    "transition",
]
