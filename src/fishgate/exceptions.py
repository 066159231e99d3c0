"""Custom exception hierarchy for fishgate."""

from __future__ import annotations


class FishgateError(Exception):
    """Base exception for all fishgate errors."""


class FishgateConfigError(FishgateError):
    """Invalid or missing configuration."""


class FishgateTransportError(FishgateError):
    """HTTP-level failure (network, timeout, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ServerError(FishgateTransportError):
    """Server answered with a non-2xx status."""


class MalformedURLError(FishgateError):
    """An endpoint URL could not be constructed from configuration."""


class InvalidDestinationError(FishgateError):
    """Destination lookup body was malformed or reported ``ok: false``."""


class ValidationGatewayError(FishgateError):
    """Remote flag lookup could not produce an answer."""


class AccessDeniedError(ValidationGatewayError):
    """The flag store refused the read (HTTP 401/403)."""


class GatewayFailureError(ValidationGatewayError):
    """The flag store lookup failed for any other reason."""
