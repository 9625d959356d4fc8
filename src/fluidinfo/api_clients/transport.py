"""HTTP transport used by the Fluidinfo request dispatcher.

The dispatcher only needs something that can issue one request and hand
back status, headers and body text. :class:`HttpxTransport` does that with
httpx; any object satisfying :class:`Transport` can replace it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

Body = Optional[Union[str, bytes]]


@dataclass(frozen=True)
class RawResponse:
    """What the transport reports once a request has completed."""

    status: int
    status_text: str
    headers: Dict[str, str] = field(default_factory=dict)
    body_text: str = ""
    handle: Any = None


@runtime_checkable
class Transport(Protocol):
    """Contract the dispatcher expects from an HTTP transport."""

    def send(
        self, method: str, url: str, headers: Dict[str, str], body: Body
    ) -> RawResponse:
        """Issue the request, blocking until it completes."""
        ...

    async def send_async(
        self, method: str, url: str, headers: Dict[str, str], body: Body
    ) -> RawResponse:
        """Issue the request on the running event loop."""
        ...


def _raw_response(response: httpx.Response) -> RawResponse:
    return RawResponse(
        status=response.status_code,
        status_text=response.reason_phrase,
        headers=dict(response.headers.items()),
        body_text=response.text,
        handle=response,
    )


class HttpxTransport:
    """Transport backed by ``httpx.Client`` and ``httpx.AsyncClient``.

    Clients are created on first use. Redirects are not followed and no
    retries are attempted: each call is exactly one HTTP exchange.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, verify: bool = True):
        self.timeout = timeout
        self.verify = verify
        self._client: Optional[httpx.Client] = None
        self._async_client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.Client:
        """Get or create the blocking HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=self.timeout, verify=self.verify)
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        """Get or create the asynchronous HTTP client."""
        if self._async_client is None or self._async_client.is_closed:
            self._async_client = httpx.AsyncClient(
                timeout=self.timeout, verify=self.verify
            )
        return self._async_client

    def send(
        self, method: str, url: str, headers: Dict[str, str], body: Body
    ) -> RawResponse:
        try:
            response = self.client.request(method, url, headers=headers, content=body)
        except httpx.HTTPError as e:
            logger.debug(f"{method} {url} failed in transport: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e
        return _raw_response(response)

    async def send_async(
        self, method: str, url: str, headers: Dict[str, str], body: Body
    ) -> RawResponse:
        try:
            response = await self.async_client.request(
                method, url, headers=headers, content=body
            )
        except httpx.HTTPError as e:
            logger.debug(f"{method} {url} failed in transport: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e
        return _raw_response(response)

    def close(self) -> None:
        """Close the blocking client."""
        if self._client and not self._client.is_closed:
            self._client.close()

    async def aclose(self) -> None:
        """Close both clients."""
        self.close()
        if self._async_client and not self._async_client.is_closed:
            await self._async_client.aclose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
