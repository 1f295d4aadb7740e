"""
Authentication strategies for the registry mutation API.

A client is configured with exactly one strategy. Bearer deployments send
an API token on every authenticated call; session deployments rely on the
session cookie held by the HTTP client's cookie jar and add an anti-forgery
header to mutating requests.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

from x07_registry_client.domain.errors import MissingCredentialsError

DEFAULT_CSRF_HEADER = "X-CSRF-Token"


class AuthStrategy(ABC):
    """
    Produces the headers an authenticated request needs.
    """

    mode: str = "none"

    @abstractmethod
    def headers(self, *, mutating: bool) -> Dict[str, str]:
        """
        Headers to attach to one authenticated request.

        Raises MissingCredentialsError when the call cannot be authenticated.
        """

    def on_session(self, csrf_token: Optional[str]) -> None:
        """Called with the CSRF token from each ``auth/session`` response."""

    def on_logout(self) -> None:
        """Called after a successful ``auth/logout``."""


class NoAuth(AuthStrategy):
    mode = "none"

    def headers(self, *, mutating: bool) -> Dict[str, str]:
        if mutating:
            raise MissingCredentialsError("mutating calls require credentials but none are configured")
        return {}


class BearerAuth(AuthStrategy):
    mode = "bearer"

    def __init__(self, token: str):
        token = (token or "").strip()
        if not token:
            raise MissingCredentialsError("bearer token must be non-empty")
        self.token = token

    def headers(self, *, mutating: bool) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self) -> str:
        return "BearerAuth(token=***)"


class SessionAuth(AuthStrategy):
    """
    Same-origin session cookie plus anti-forgery header.

    Reads need no extra headers. Mutating calls need a CSRF token, either
    given up front or learned from the latest session lookup.
    """

    mode = "session"

    def __init__(self, csrf_token: Optional[str] = None, csrf_header: str = DEFAULT_CSRF_HEADER):
        self.csrf_token = csrf_token or None
        self.csrf_header = csrf_header

    def headers(self, *, mutating: bool) -> Dict[str, str]:
        if not mutating:
            return {}
        if not self.csrf_token:
            raise MissingCredentialsError("no CSRF token; load the auth session before mutating calls")
        return {self.csrf_header: self.csrf_token}

    def on_session(self, csrf_token: Optional[str]) -> None:
        self.csrf_token = csrf_token or None

    def on_logout(self) -> None:
        self.csrf_token = None
