"""Request construction helpers for the Fluidinfo API.

Pure functions that turn a high-level call description into the pieces of
an HTTP request: the Content-Type header, the encoded URL and the
serialized body. None of these keep state between calls.
"""

import json
import re
from typing import Any, Mapping, Optional, Sequence, Union

from urllib.parse import quote

# MIME type Fluidinfo uses for primitive tag values
VALUE_CONTENT_TYPE = "application/vnd.fluiddb.value+json"
JSON_CONTENT_TYPE = "application/json"
JSON_CONTENT_TYPES = (JSON_CONTENT_TYPE, VALUE_CONTENT_TYPE)

# Characters encodeURIComponent leaves alone in addition to quote()'s defaults
_SAFE_CHARS = "!~*'()"

_TAG_VALUE_PATH = re.compile(r"^(objects|about)/")

PathLike = Union[str, Sequence[str]]
ArgsLike = Mapping[str, Any]


class _Absent:
    """Marker for a request without a body.

    ``None`` cannot play this role because it is the JSON null tag value.
    """

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def is_primitive(value: Any) -> bool:
    """Check whether a value is a Fluidinfo primitive tag value.

    Numbers, strings, booleans and None are primitive. A list or tuple is
    primitive only when every member is a string (a Fluidinfo set), so the
    empty list counts. Anything else needs an explicit MIME type.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return True
    if isinstance(value, (list, tuple)):
        return all(isinstance(member, str) for member in value)
    return False


def is_json_content_type(content_type: Optional[str]) -> bool:
    """Return True if the MIME type denotes a JSON payload."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in JSON_CONTENT_TYPES


def detect_content_type(
    method: str,
    path: str,
    data: Any = ABSENT,
    content_type: Optional[str] = None,
) -> Optional[str]:
    """Work out the Content-Type header for a request.

    A PUT to ``objects/...`` or ``about/...`` writes a tag value, so it either
    carries the caller's MIME type or must be a primitive value. Any other
    request with a body talks JSON to the API.

    Args:
        method: HTTP method of the request
        path: Request path relative to the instance base URL (already encoded)
        data: Request body, or ABSENT
        content_type: Explicit MIME type supplied by the caller

    Returns:
        MIME type to send, or None when no header should be set

    Raises:
        ValueError: If a tag value PUT has neither a MIME type nor a primitive value
    """
    if method.upper() == "PUT" and _TAG_VALUE_PATH.match(path):
        if content_type:
            return content_type
        if is_primitive(data):
            return VALUE_CONTENT_TYPE
        raise ValueError("Must supply Content-Type")
    if data is not ABSENT:
        return JSON_CONTENT_TYPE
    return None


def encode_path(path: PathLike) -> str:
    """Encode a path given as a sequence of segments.

    Each segment is percent-encoded on its own (including any '/') and the
    results joined with '/'. A string path is returned untouched.
    """
    if isinstance(path, str):
        return path
    return "/".join(quote(str(segment), safe=_SAFE_CHARS) for segment in path)


def _encode_arg(value: Any) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return quote(str(value), safe=_SAFE_CHARS)


def build_args(args: Optional[ArgsLike]) -> str:
    """Serialize query arguments into a '?'-prefixed string.

    A list or tuple value produces one ``key=value`` pair per member, in
    order. None values are skipped. Returns an empty string when there is
    nothing to send.
    """
    if not args:
        return ""
    pairs = []
    for key, value in args.items():
        if value is None:
            continue
        encoded_key = quote(str(key), safe=_SAFE_CHARS)
        members = value if isinstance(value, (list, tuple)) else [value]
        for member in members:
            pairs.append(f"{encoded_key}={_encode_arg(member)}")
    if not pairs:
        return ""
    return "?" + "&".join(pairs)


def build_url(base_url: str, path: PathLike, args: Optional[ArgsLike] = None) -> str:
    """Join base URL, encoded path and query arguments into an absolute URL."""
    return f"{base_url}{encode_path(path)}{build_args(args)}"


def serialize_body(data: Any, content_type: Optional[str]) -> Optional[Union[str, bytes]]:
    """Turn the request payload into what goes on the wire.

    JSON content types (including primitive tag values) are dumped with
    ``json.dumps``; opaque payloads are passed through as str or bytes.

    Raises:
        ValueError: If a JSON payload contains NaN or an infinite float
    """
    if data is ABSENT:
        return None
    if is_json_content_type(content_type):
        return json.dumps(data, allow_nan=False)
    if isinstance(data, (str, bytes)):
        return data
    return str(data)
