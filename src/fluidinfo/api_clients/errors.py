"""Exceptions raised by the Fluidinfo API clients.

Caller mistakes (a missing ``where``, a bad instance URL) raise the builtin
ValueError. The classes below cover the remaining failure kinds. HTTP error
statuses are never raised; they reach the caller's error callback.
"""

from typing import Optional


class FluidinfoAPIError(Exception):
    """Base exception for Fluidinfo client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthorizationError(FluidinfoAPIError):
    """Raised when an operation needs credentials the session lacks."""

    pass


class TransportError(FluidinfoAPIError):
    """Raised when the HTTP transport cannot be created or fails to deliver."""

    pass


class ResponseParseError(FluidinfoAPIError):
    """Raised when a body labelled as JSON does not parse."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        raw_data: str = "",
    ):
        super().__init__(message, status_code)
        self.raw_data = raw_data
