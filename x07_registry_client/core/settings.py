"""
Environment-driven client settings.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

WEB_ORIGIN_ENV_VAR = "X07_REGISTRY_WEB_ORIGIN"
AUTH_MODE_ENV_VAR = "X07_REGISTRY_AUTH_MODE"
TOKEN_ENV_VAR = "X07_REGISTRY_TOKEN"
TIMEOUT_ENV_VAR = "X07_REGISTRY_TIMEOUT_SECONDS"
TOKEN_FILE_ENV_VAR = "X07_REGISTRY_TOKEN_FILE"

DEFAULT_WEB_ORIGIN = "https://x07.io/"
_DEFAULT_TOKEN_FILE = Path.home() / ".config" / "x07" / "registry-token"

AuthMode = Literal["none", "bearer", "session"]


class ClientSettings(BaseModel):
    """
    Settings for building a ``RegistryClient``.

    Only the web origin is needed to bootstrap; the index and API locations
    come from the origin's runtime config document.
    """

    web_origin: str = Field(
        default=DEFAULT_WEB_ORIGIN,
        description="Registry web origin serving the runtime config document.",
    )
    auth_mode: AuthMode = Field(
        default="bearer",
        description="Authentication strategy: 'none', 'bearer' or 'session'.",
    )
    token: Optional[str] = Field(
        default=None,
        description="API token for bearer mode. Falls back to the token file.",
    )
    timeout_seconds: float = Field(default=10.0, gt=0)
    token_file: Path = Field(default=_DEFAULT_TOKEN_FILE)

    @field_validator("web_origin")
    @classmethod
    def _origin_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("web_origin must be non-empty")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientSettings":
        env = os.environ if environ is None else environ
        values = {}
        if env.get(WEB_ORIGIN_ENV_VAR):
            values["web_origin"] = env[WEB_ORIGIN_ENV_VAR]
        if env.get(AUTH_MODE_ENV_VAR):
            values["auth_mode"] = env[AUTH_MODE_ENV_VAR].strip().lower()
        if env.get(TOKEN_ENV_VAR):
            values["token"] = env[TOKEN_ENV_VAR]
        if env.get(TIMEOUT_ENV_VAR):
            values["timeout_seconds"] = env[TIMEOUT_ENV_VAR]
        if env.get(TOKEN_FILE_ENV_VAR):
            values["token_file"] = Path(env[TOKEN_FILE_ENV_VAR]).expanduser()
        return cls(**values)
