"""Fluidinfo client with query, update and object helpers.

Builds on :class:`FluidinfoAPIClient`: every helper issues exactly one
request and reshapes the service's nested tag-value structures into flat
dictionaries keyed by tag path.
"""

import dataclasses
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .base_client import Callback, FluidinfoAPIClient
from .errors import AuthorizationError, ResponseParseError
from .response import Result
from .session import Session
from .transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)

VALUES_PATH = "values"
ABOUT_TAG = "fluiddb/about"
UPDATED_AT = "updated-at"


def escape_about(about: str) -> str:
    """Escape backslashes and double quotes for use inside a query string."""
    return about.replace("\\", "\\\\").replace('"', '\\"')


def object_query(about: Optional[str] = None, object_id: Optional[str] = None) -> str:
    """Build the query matching a single object by about value or id.

    Raises:
        ValueError: Unless exactly one of about/object_id is given
    """
    if (about is None) == (object_id is None):
        raise ValueError("Supply either an 'about' or 'id' specification.")
    if about is not None:
        return f'fluiddb/about="{escape_about(about)}"'
    return f'fluiddb/id="{object_id}"'


def opaque_value_url(base_url: str, object_id: str, tag: str) -> str:
    return f"{base_url}objects/{object_id}/{tag}"


def flatten_values(base_url: str, body: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a /values response into one dictionary per object.

    ``{"results": {"id": {oid: {tag: {"value": v}}}}}`` becomes
    ``[{"id": oid, tag: v}]``. Opaque values keep their descriptor and gain a
    ``url`` pointing at the value itself.
    """
    objects = []
    for object_id, tags in body.get("results", {}).get("id", {}).items():
        obj: Dict[str, Any] = {"id": object_id}
        for tag, tag_value in tags.items():
            if "value" in tag_value:
                obj[tag] = tag_value["value"]
            else:
                opaque = dict(tag_value)
                opaque["url"] = opaque_value_url(base_url, object_id, tag)
                obj[tag] = opaque
        objects.append(obj)
    return objects


def _require_body(result: Result, expected: type, what: str) -> None:
    """Raise ResponseParseError unless the parsed body has the expected shape."""
    if not isinstance(result.data, expected):
        raise ResponseParseError(
            f"Expected {what} in the response body, "
            f"got {type(result.data).__name__}",
            status_code=result.status,
            raw_data=result.raw_data,
        )


def _as_tag_list(tags: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(tags, str):
        return [tags]
    return list(tags)


def _values_args(select, where: str) -> Dict[str, Any]:
    args: Dict[str, Any] = {}
    if select is not None:
        args["tag"] = _as_tag_list(select)
    args["query"] = where
    return args


class FluidinfoClient:
    """High level interface to a Fluidinfo instance.

    ``api`` exposes the raw REST verbs; the methods on this class encode the
    /values query protocol and the object helpers on top of them. Every
    method raises ValueError for missing options before any I/O happens.
    """

    def __init__(self, session: Session, transport: Optional[Transport] = None):
        self.session = session
        self.api = FluidinfoAPIClient(session, transport)

    @property
    def base_url(self) -> str:
        return self.session.base_url

    @property
    def username(self) -> Optional[str]:
        return self.session.username

    def _shape_query(self, result: Result) -> Tuple[Result, bool]:
        _require_body(result, dict, "a JSON object")
        objects = flatten_values(self.base_url, result.data)
        logger.debug(f"Query matched {len(objects)} object(s)")
        return dataclasses.replace(result, data=objects), True

    def query(
        self,
        select: Optional[Union[str, Sequence[str]]] = None,
        where: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Get tag values from every object matching a query.

        Args:
            select: Tag paths to return; None returns every tag
            where: Fluidinfo query, e.g. ``has ntoll/rating > 7``
            on_success: Receives a Result whose data is a list of flat objects
            on_error: Receives the Result of a failed request
            asynchronous: False to block and return the Result

        Raises:
            ValueError: If ``where`` is missing
        """
        if where is None:
            raise ValueError("Missing where option.")
        return self.api.send(
            "GET",
            path=VALUES_PATH,
            args=_values_args(select, where),
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
            shape=self._shape_query,
        )

    def update(
        self,
        values: Optional[Mapping[str, Any]] = None,
        where: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Set tag values on every object matching a query.

        Raises:
            ValueError: If ``values`` or ``where`` is missing
        """
        if values is None:
            raise ValueError("Missing values option.")
        if where is None:
            raise ValueError("Missing where option.")
        value_spec = {tag: {"value": value} for tag, value in values.items()}
        payload = {"queries": [[where, value_spec]]}
        return self.api.send(
            "PUT",
            path=VALUES_PATH,
            data=payload,
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
        )

    def tag(
        self,
        values: Optional[Mapping[str, Any]] = None,
        about: Optional[str] = None,
        id: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Set tag values on one object identified by about value or id."""
        if values is None:
            raise ValueError("Missing values option.")
        return self.update(
            values=values,
            where=object_query(about, id),
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
        )

    def delete(
        self,
        tags: Optional[Union[str, Sequence[str]]] = None,
        where: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Remove tag values from every object matching a query.

        Raises:
            ValueError: If ``tags`` or ``where`` is missing
        """
        if tags is None:
            raise ValueError("Missing tags option.")
        if where is None:
            raise ValueError("Missing where option.")
        return self.api.send(
            "DELETE",
            path=VALUES_PATH,
            args={"tag": _as_tag_list(tags), "query": where},
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
        )

    def get_object(
        self,
        select: Optional[Union[str, Sequence[str]]] = None,
        about: Optional[str] = None,
        id: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Get the tag values of one object.

        A single match is unwrapped into one flat dictionary and no match
        yields an empty one. More than one match breaks the uniqueness of
        about values and ids, so the result goes to ``on_error`` instead.
        """
        where = object_query(about, id)

        def shape(result: Result) -> Tuple[Result, bool]:
            result, _ = self._shape_query(result)
            matches = result.data
            if len(matches) == 1:
                return dataclasses.replace(result, data=matches[0]), True
            if not matches:
                return dataclasses.replace(result, data={}), True
            logger.warning(f"{len(matches)} objects matched {where}, expected one")
            return result, False

        return self.api.send(
            "GET",
            path=VALUES_PATH,
            args=_values_args(select, where),
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
            shape=shape,
        )

    def create_object(
        self,
        about: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Create a new object, optionally with an about value.

        On success the result data is ``{"id": ...}`` plus ``fluiddb/about``
        when an about value was given.

        Raises:
            AuthorizationError: If the session has no credentials
        """
        if self.session.is_anonymous:
            raise AuthorizationError("You must be signed in to create a new object.")
        path: Union[str, List[str]] = "objects"
        if about is not None:
            path = ["about", about]

        def shape(result: Result) -> Tuple[Result, bool]:
            _require_body(result, dict, "a JSON object")
            if "id" not in result.data:
                raise ResponseParseError(
                    "Missing id of the new object",
                    status_code=result.status,
                    raw_data=result.raw_data,
                )
            new_object: Dict[str, Any] = {"id": result.data["id"]}
            if about is not None:
                new_object[ABOUT_TAG] = about
            return dataclasses.replace(result, data=new_object), True

        return self.api.send(
            "POST",
            path=path,
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
            shape=shape,
        )

    def _shape_recent(self, result: Result) -> Tuple[Result, bool]:
        _require_body(result, list, "a JSON array")
        items = []
        for entry in result.data:
            item = dict(entry)
            if item.get(UPDATED_AT):
                try:
                    item[UPDATED_AT] = datetime.fromisoformat(item[UPDATED_AT])
                except ValueError as e:
                    raise ResponseParseError(
                        f"Invalid {UPDATED_AT} timestamp: {item[UPDATED_AT]!r}",
                        status_code=result.status,
                        raw_data=result.raw_data,
                    ) from e
            value = item.get("value")
            if isinstance(value, dict) and "value-type" in value:
                opaque = dict(value)
                opaque["url"] = opaque_value_url(
                    self.base_url, item["id"], item["tag"]
                )
                item["value"] = opaque
            items.append(item)
        return dataclasses.replace(result, data=items), True

    def recent(
        self,
        about: Optional[str] = None,
        id: Optional[str] = None,
        where: Optional[str] = None,
        user: Optional[str] = None,
        where_users: Optional[str] = None,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        asynchronous: bool = True,
    ):
        """Get the latest tag values written to objects or by users.

        Exactly one selector must be given:

        - about / id: activity on one object
        - where: activity on objects matching a query
        - user: activity by one user
        - where_users: activity by users matching a query

        Raises:
            ValueError: Unless exactly one selector is given
        """
        selectors = {
            "about": about,
            "id": id,
            "where": where,
            "user": user,
            "where_users": where_users,
        }
        given = [name for name, value in selectors.items() if value is not None]
        if len(given) != 1:
            raise ValueError(
                "Supply exactly one of 'about', 'id', 'where', 'user' or "
                "'where_users'."
            )

        args = None
        if about is not None:
            path: Union[str, List[str]] = ["recent", "about", about]
        elif id is not None:
            path = ["recent", "objects", id]
        elif where is not None:
            path, args = "recent/objects", {"query": where}
        elif user is not None:
            path = ["recent", "users", user]
        else:
            path, args = "recent/users", {"query": where_users}

        return self.api.send(
            "GET",
            path=path,
            args=args,
            on_success=on_success,
            on_error=on_error,
            asynchronous=asynchronous,
            shape=self._shape_recent,
        )

    def close(self) -> None:
        self.api.close()

    async def aclose(self) -> None:
        await self.api.aclose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def connect(
    config: Optional[Any] = None,
    transport: Optional[Transport] = None,
    **overrides: Any,
) -> FluidinfoClient:
    """Factory function to create a FluidinfoClient.

    Args:
        config: ClientConfig to start from; built from overrides when None
        transport: HTTP transport, defaults to HttpxTransport with the
            configured timeout
        **overrides: ClientConfig fields (instance, username, password,
            access_token, timeout)

    Raises:
        ValueError: If the instance URL or credentials are invalid
    """
    from ..config import ClientConfig

    if config is None:
        config = ClientConfig(**overrides)
    elif overrides:
        config = ClientConfig(**{**config.model_dump(), **overrides})

    session = Session.create(
        instance=config.instance,
        username=config.username,
        password=config.password,
        access_token=config.access_token,
    )
    logger.debug(f"Connecting to {session.base_url} as {session.username or 'anonymous'}")
    return FluidinfoClient(
        session, transport or HttpxTransport(timeout=float(config.timeout))
    )
