"""
Client library for the x07 package registry.

This package is responsible for:
* Bootstrapping from the registry's runtime config document.
* Resolving packages through the sparse index (sharded paths, NDJSON entries).
* Selecting the latest usable version under semantic-version precedence.
* Calling the registry API (search, owners, tokens, auth session, yank).
* Decoding every response strictly against its schema.
"""
from x07_registry_client.api.auth import AuthStrategy, BearerAuth, NoAuth, SessionAuth
from x07_registry_client.domain.errors import (
    ApiClientError,
    ErrorKind,
    MissingCredentialsError,
    PackageNameError,
    to_api_error,
)
from x07_registry_client.domain.registry_utils import index_path, latest_usable_version
from x07_registry_client.services.registry import RegistryClient

__version__ = "0.1.0"

__all__ = [
    "ApiClientError",
    "AuthStrategy",
    "BearerAuth",
    "ErrorKind",
    "MissingCredentialsError",
    "NoAuth",
    "PackageNameError",
    "RegistryClient",
    "SessionAuth",
    "index_path",
    "latest_usable_version",
    "to_api_error",
]
