"""Configuration management for the Fluidinfo client.

Settings come from a JSON config file and/or FLUIDINFO_* environment
variables; the environment wins when both are used.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .api_clients.session import resolve_instance

DEFAULT_CONFIG_PATH = Path.home() / ".fluidinfo" / "config.json"
MIN_TIMEOUT = 1
MAX_TIMEOUT = 300

ENV_VARS = {
    "instance": "FLUIDINFO_INSTANCE",
    "username": "FLUIDINFO_USERNAME",
    "password": "FLUIDINFO_PASSWORD",
    "access_token": "FLUIDINFO_ACCESS_TOKEN",
    "timeout": "FLUIDINFO_TIMEOUT",
    "log_level": "FLUIDINFO_LOG_LEVEL",
}

logger = logging.getLogger(__name__)


class ClientConfig(BaseModel):
    """Settings used to open a session with a Fluidinfo instance."""

    instance: str = Field(
        default="main", description="'main', 'sandbox' or a bespoke base URL"
    )
    username: Optional[str] = Field(None, description="Username for Basic auth")
    password: Optional[str] = Field(None, description="Password for Basic auth")
    access_token: Optional[str] = Field(None, description="OAuth2 access token")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", description="Logging level for the command line"
    )

    @field_validator("instance")
    @classmethod
    def instance_must_be_known_or_url(cls, v):
        resolve_instance(v)
        return v

    @field_validator("timeout")
    @classmethod
    def timeout_must_be_in_range(cls, v):
        if v < MIN_TIMEOUT or v > MAX_TIMEOUT:
            raise ValueError(
                f"timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds"
            )
        return v

    @model_validator(mode="after")
    def credentials_come_in_pairs(self):
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be supplied together")
        return self


def load_config(
    config_path: Optional[str] = None, use_env: bool = False
) -> ClientConfig:
    """Load configuration from file and/or environment variables.

    Args:
        config_path: Path to config JSON file (default: ~/.fluidinfo/config.json)
        use_env: Whether to read FLUIDINFO_* environment variables (overrides file)

    Returns:
        ClientConfig instance

    Raises:
        FileNotFoundError: If the config file is required but missing
        json.JSONDecodeError: If the config file contains invalid JSON
        pydantic.ValidationError: If a setting is invalid
    """
    config_data: Dict[str, Any] = {}

    if config_path is not None or not use_env:
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        path = path.expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        file_perms = path.stat().st_mode & 0o777
        if file_perms & 0o077:
            logger.warning(
                f"Configuration file {path} has insecure permissions {oct(file_perms)}. "
                f"Recommend setting to 0600: chmod 0600 {path}"
            )

        with open(path) as f:
            config_data = json.load(f)

    if use_env:
        for field_name, env_var in ENV_VARS.items():
            if env_var in os.environ:
                config_data[field_name] = os.environ[env_var]

    return ClientConfig(**config_data)
