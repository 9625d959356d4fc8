"""Session state shared by every call made through a Fluidinfo client.

A Session is created once and never changes: it holds the instance base
URL and whatever credential material the caller configured.
"""

import base64
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAIN_INSTANCE_URL = "https://fluiddb.fluidinfo.com/"
SANDBOX_INSTANCE_URL = "https://sandbox.fluidinfo.com/"

INSTANCES = {
    "main": MAIN_INSTANCE_URL,
    "sandbox": SANDBOX_INSTANCE_URL,
}

_BESPOKE_URL = re.compile(r"^(http|https)://.+/$")


def resolve_instance(instance: Optional[str]) -> str:
    """Map an instance name or bespoke URL to an absolute base URL.

    Args:
        instance: "main", "sandbox" (any case), a URL, or None for main

    Returns:
        Base URL ending in '/'

    Raises:
        ValueError: If a bespoke URL lacks http[s]:// or the trailing slash
    """
    if not instance:
        return MAIN_INSTANCE_URL
    known = INSTANCES.get(instance.lower())
    if known:
        return known
    if not _BESPOKE_URL.match(instance):
        raise ValueError(
            "The URL must start with http[s]:// and have a trailing slash ('/') "
            "to be valid. E.g. https://localhost/"
        )
    return instance


def encode_basic_credential(username: str, password: str) -> str:
    """Base64 of the UTF-8 bytes of ``username:password``."""
    raw = f"{username}:{password}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


class Session(BaseModel):
    """Immutable connection details for one Fluidinfo instance."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default=MAIN_INSTANCE_URL, description="Instance base URL")
    username: Optional[str] = Field(None, description="Basic auth username")
    basic_credential: Optional[str] = Field(
        None, description="Base64 encoded username:password"
    )
    access_token: Optional[str] = Field(None, description="OAuth2 access token")

    @field_validator("base_url")
    @classmethod
    def base_url_must_be_absolute(cls, v):
        if not _BESPOKE_URL.match(v):
            raise ValueError("base_url must start with http[s]:// and end with '/'")
        return v

    @classmethod
    def create(
        cls,
        instance: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> "Session":
        """Build a session from an instance selector and optional credentials.

        Basic credentials are only stored when both username and password are
        given. With neither Basic credentials nor a token the session is
        anonymous.
        """
        basic_credential = None
        session_username = None
        if username is not None and password is not None:
            basic_credential = encode_basic_credential(username, password)
            session_username = username
        return cls(
            base_url=resolve_instance(instance),
            username=session_username,
            basic_credential=basic_credential,
            access_token=access_token or None,
        )

    @property
    def is_anonymous(self) -> bool:
        """True when no credential of any kind is configured."""
        return not self.basic_credential and not self.access_token
