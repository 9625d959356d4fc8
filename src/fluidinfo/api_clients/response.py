"""Normalized results of calls to the Fluidinfo API."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .errors import ResponseParseError
from .request_builder import is_json_content_type
from .transport import RawResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    """Outcome of one request, handed to exactly one callback.

    Attributes:
        status: HTTP status code
        status_text: HTTP reason phrase
        headers: Response headers keyed by lower-case name
        raw_data: Unparsed body text
        data: Parsed JSON body, or the body text when it is not JSON
        request: Transport handle (an ``httpx.Response`` by default)
    """

    status: int
    status_text: str
    headers: Dict[str, str] = field(default_factory=dict)
    raw_data: str = ""
    data: Any = None
    request: Any = None

    @property
    def ok(self) -> bool:
        return is_success(self.status)


def is_success(status: int) -> bool:
    """Statuses in [1, 300) and 304 count as success."""
    return 0 < status < 300 or status == 304


def normalize_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {name.lower(): value for name, value in headers.items()}


def normalize_response(raw: RawResponse) -> Result:
    """Build a Result from what the transport returned.

    Raises:
        ResponseParseError: If the content-type claims JSON but the body
            does not parse
    """
    headers = normalize_headers(raw.headers)
    data: Any = raw.body_text
    # HEAD responses and 204s advertise a type but carry no body
    if raw.body_text and is_json_content_type(headers.get("content-type")):
        try:
            data = json.loads(raw.body_text)
        except json.JSONDecodeError as e:
            raise ResponseParseError(
                f"Invalid JSON in {headers['content-type']} response: {e}",
                status_code=raw.status,
                raw_data=raw.body_text,
            ) from e
    return Result(
        status=raw.status,
        status_text=raw.status_text,
        headers=headers,
        raw_data=raw.body_text,
        data=data,
        request=raw.handle,
    )
