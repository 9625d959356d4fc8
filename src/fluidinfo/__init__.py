"""Fluidinfo - a small and simple client for the Fluidinfo tag store."""

__version__ = "0.1.0"

from .api_clients import (  # noqa: E402
    ABSENT,
    AuthorizationError,
    FluidinfoAPIClient,
    FluidinfoAPIError,
    FluidinfoClient,
    RequestOptions,
    ResponseParseError,
    Result,
    Session,
    TransportError,
    connect,
)

__all__ = [
    "ABSENT",
    "AuthorizationError",
    "FluidinfoAPIClient",
    "FluidinfoAPIError",
    "FluidinfoClient",
    "RequestOptions",
    "ResponseParseError",
    "Result",
    "Session",
    "TransportError",
    "connect",
]
