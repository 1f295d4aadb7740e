"""
Error currency for the registry client.

Every fallible network-facing operation raises ``ApiClientError`` carrying an
``ApiError`` whose ``kind`` classifies the failure. Bad caller input (package
names, missing credentials) is reported as a ``ValueError`` subclass before
any request is issued.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from x07_registry_client.domain.models import ApiError


class ErrorKind(str, Enum):
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    HTTP = "HTTP"
    BAD_JSON = "BAD_JSON"
    BAD_RESPONSE = "BAD_RESPONSE"
    BAD_INDEX = "BAD_INDEX"
    MISCONFIG = "MISCONFIG"
    UNKNOWN = "UNKNOWN"

    @property
    def default_code(self) -> str:
        return f"X07WEB_{self.value}"


class ApiClientError(Exception):
    """Classified failure raised at every network-facing boundary."""

    def __init__(self, error: ApiError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind(self.error.kind)

    @property
    def code(self) -> str:
        return self.error.code

    @classmethod
    def of(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        url: Optional[str] = None,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        request_id: Optional[str] = None,
        line: Optional[int] = None,
    ) -> "ApiClientError":
        return cls(
            ApiError(
                kind=kind.value,
                code=code or kind.default_code,
                message=message,
                url=url,
                http_status=http_status,
                request_id=request_id,
                line=line,
            )
        )

    def __repr__(self) -> str:
        return f"ApiClientError({self.error.code}: {self.error.message})"


class DecodeError(ValueError):
    """A JSON value did not match the expected response shape."""


class PackageNameError(ValueError):
    """A package name failed validation."""


class MissingCredentialsError(ValueError):
    """An authenticated call was attempted without usable credentials."""


def to_api_error(exc: BaseException) -> ApiError:
    """Collapse any exception into an ``ApiError`` for display or logging."""
    if isinstance(exc, ApiClientError):
        return exc.error
    return ApiError(
        kind=ErrorKind.UNKNOWN.value,
        code=ErrorKind.UNKNOWN.default_code,
        message=str(exc) or exc.__class__.__name__,
    )
