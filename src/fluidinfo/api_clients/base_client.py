"""Base Fluidinfo API Client.

Turns a call description into exactly one HTTP request, normalizes the
response and hands it to the success or error callback.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple, Union

from .errors import TransportError
from .request_builder import (
    ABSENT,
    PathLike,
    build_url,
    detect_content_type,
    encode_path,
    serialize_body,
)
from .response import Result, normalize_response
from .session import Session, encode_basic_credential
from .transport import Body, HttpxTransport, RawResponse, Transport

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "X-FluidDB-Access-Token"

Callback = Callable[[Result], Any]
# Post-processing applied to successful results; returns the new result and
# whether it should still be reported as a success.
Shaper = Callable[[Result], Tuple[Result, bool]]


@dataclass
class RequestOptions:
    """Description of one call to the Fluidinfo REST API.

    Args:
        path: Path relative to the base URL, or a sequence of segments to encode
        args: Query arguments; list values repeat the key once per member
        data: Request payload, ABSENT for none (None is the JSON null value)
        content_type: Explicit MIME type, required for opaque tag values
        asynchronous: Run on the event loop (True) or block and return (False)
        username: Per-call Basic auth override, used together with password
        password: Per-call Basic auth override, used together with username
        on_success: Called with the Result for 1xx/2xx and 304 statuses
        on_error: Called with the Result for every other status
    """

    path: PathLike = ""
    args: Optional[Mapping[str, Any]] = None
    data: Any = ABSENT
    content_type: Optional[str] = None
    asynchronous: bool = True
    username: Optional[str] = None
    password: Optional[str] = None
    on_success: Optional[Callback] = None
    on_error: Optional[Callback] = None


@dataclass(frozen=True)
class ResolvedRequest:
    """Fully specified HTTP request derived from options and session."""

    method: str
    url: str
    headers: Dict[str, str]
    body: Body = None


def select_credentials(
    session: Session,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> Dict[str, str]:
    """Pick the authentication headers for a request.

    A per-call username/password wins. Otherwise an OAuth2 token is sent with
    ``Authorization: oauth2`` (naming the Basic credential as the consumer if
    one is configured), then plain Basic auth, then nothing at all.
    """
    if username is not None and password is not None:
        return {"Authorization": "basic " + encode_basic_credential(username, password)}
    if session.access_token:
        authorization = "oauth2"
        if session.basic_credential:
            authorization = f"oauth2 {session.basic_credential}"
        return {
            "Authorization": authorization,
            ACCESS_TOKEN_HEADER: session.access_token,
        }
    if session.basic_credential:
        return {"Authorization": "basic " + session.basic_credential}
    return {}


class FluidinfoAPIClient:
    """Request dispatcher for the Fluidinfo REST API.

    Provides ``get``, ``post``, ``put``, ``delete`` and ``head``. Each takes an
    optional :class:`RequestOptions` template plus keyword overrides and works
    on a private copy, so one template can be shared by concurrent calls.
    """

    def __init__(self, session: Session, transport: Optional[Transport] = None):
        """Initialize the dispatcher.

        Args:
            session: Immutable session holding base URL and credentials
            transport: HTTP transport, defaults to a new HttpxTransport
        """
        self.session = session
        self.transport: Transport = transport or HttpxTransport()
        # Strong references to in-flight asynchronous requests
        self._tasks: Set["asyncio.Task[Result]"] = set()

    def resolve(self, method: str, options: RequestOptions) -> ResolvedRequest:
        """Build the request that would be sent for these options.

        Raises:
            ValueError: If a tag value PUT has no detectable Content-Type
        """
        method = method.upper()
        path = encode_path(options.path)
        headers = select_credentials(self.session, options.username, options.password)
        content_type = detect_content_type(
            method, path, options.data, options.content_type
        )
        body = None
        if content_type:
            headers["Content-Type"] = content_type
            body = serialize_body(options.data, content_type)
        return ResolvedRequest(
            method=method,
            url=build_url(self.session.base_url, path, options.args),
            headers=headers,
            body=body,
        )

    def _complete(
        self, raw: RawResponse, options: RequestOptions, shape: Optional[Shaper]
    ) -> Result:
        result = normalize_response(raw)
        succeeded = result.ok
        logger.debug(f"Received {result.status} {result.status_text}")
        if succeeded and shape is not None:
            result, succeeded = shape(result)
        callback = options.on_success if succeeded else options.on_error
        if callback is not None:
            callback(result)
        return result

    def send(
        self,
        method: str,
        options: Optional[RequestOptions] = None,
        shape: Optional[Shaper] = None,
        **overrides: Any,
    ) -> Union[Result, "asyncio.Task[Result]"]:
        """Dispatch one request.

        Args:
            method: HTTP method
            options: Request template, copied before use
            shape: Post-processing for successful results
            **overrides: RequestOptions fields replacing those of the template

        Returns:
            The Result when ``asynchronous`` is False, otherwise the
            asyncio.Task that resolves to it

        Raises:
            ValueError: If the request cannot be built
            TransportError: If an asynchronous call has no running event loop,
                or a synchronous call fails in the transport
        """
        options = dataclasses.replace(options or RequestOptions(), **overrides)
        request = self.resolve(method, options)
        logger.debug(f"{request.method} {request.url}")

        if options.asynchronous:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise TransportError(
                    "Asynchronous requests need a running event loop; "
                    "pass asynchronous=False to block instead"
                ) from e
            task = loop.create_task(self._send_resolved_async(request, options, shape))
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
            return task

        raw = self.transport.send(
            request.method, request.url, request.headers, request.body
        )
        return self._complete(raw, options, shape)

    def _task_done(self, task: "asyncio.Task[Result]") -> None:
        """Forget a finished task and log a failure no callback could report."""
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Asynchronous request failed: {error}", exc_info=error)

    @property
    def pending(self) -> Set["asyncio.Task[Result]"]:
        """Asynchronous requests that have not completed yet."""
        return set(self._tasks)

    async def _send_resolved_async(
        self, request: ResolvedRequest, options: RequestOptions, shape: Optional[Shaper]
    ) -> Result:
        raw = await self.transport.send_async(
            request.method, request.url, request.headers, request.body
        )
        return self._complete(raw, options, shape)

    async def send_async(
        self,
        method: str,
        options: Optional[RequestOptions] = None,
        shape: Optional[Shaper] = None,
        **overrides: Any,
    ) -> Result:
        """Awaitable form of :meth:`send`; callbacks fire before it returns."""
        options = dataclasses.replace(options or RequestOptions(), **overrides)
        request = self.resolve(method, options)
        logger.debug(f"{request.method} {request.url}")
        return await self._send_resolved_async(request, options, shape)

    def get(self, options: Optional[RequestOptions] = None, **overrides: Any):
        """Make a GET request; any payload is dropped."""
        overrides["data"] = ABSENT
        return self.send("GET", options, **overrides)

    def post(self, options: Optional[RequestOptions] = None, **overrides: Any):
        """Make a POST request."""
        return self.send("POST", options, **overrides)

    def put(self, options: Optional[RequestOptions] = None, **overrides: Any):
        """Make a PUT request."""
        return self.send("PUT", options, **overrides)

    def delete(self, options: Optional[RequestOptions] = None, **overrides: Any):
        """Make a DELETE request; any payload is dropped."""
        overrides["data"] = ABSENT
        return self.send("DELETE", options, **overrides)

    def head(self, options: Optional[RequestOptions] = None, **overrides: Any):
        """Make a HEAD request; any payload is dropped."""
        overrides["data"] = ABSENT
        return self.send("HEAD", options, **overrides)

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    async def aclose(self) -> None:
        """Wait for in-flight requests, then close the transport."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()
