"""API Client Abstractions for Fluidinfo.

The request pipeline (request building, dispatch, response normalization)
and the query/update protocol built on top of it.
"""

from .base_client import (
    FluidinfoAPIClient,
    RequestOptions,
    ResolvedRequest,
    select_credentials,
)
from .errors import (
    AuthorizationError,
    FluidinfoAPIError,
    ResponseParseError,
    TransportError,
)
from .request_builder import (
    ABSENT,
    VALUE_CONTENT_TYPE,
    detect_content_type,
    encode_path,
    is_primitive,
)
from .response import Result
from .session import Session
from .transport import HttpxTransport, RawResponse, Transport
from .values_client import FluidinfoClient, connect

__all__ = [
    # Dispatcher
    "FluidinfoAPIClient",
    "RequestOptions",
    "ResolvedRequest",
    "select_credentials",
    # Errors
    "AuthorizationError",
    "FluidinfoAPIError",
    "ResponseParseError",
    "TransportError",
    # Request building
    "ABSENT",
    "VALUE_CONTENT_TYPE",
    "detect_content_type",
    "encode_path",
    "is_primitive",
    # Results, sessions, transport
    "Result",
    "Session",
    "HttpxTransport",
    "RawResponse",
    "Transport",
    # High level client
    "FluidinfoClient",
    "connect",
]
