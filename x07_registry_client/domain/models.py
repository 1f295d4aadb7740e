"""
Pydantic models for the registry client.

This module defines the typed values produced by the response decoders:
- Runtime bootstrap configuration and the sparse index configuration
- Sparse index entries, package manifests and the catalog
- Mutation API response envelopes (search, owners, tokens, auth, yank)
- The ``ApiError`` value carried by every client failure

Instances are frozen. They are built by ``x07_registry_client.api.decode``
after exact validation, never by coercing raw wire data.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


RUNTIME_CONFIG_SCHEMA = "x07.registry_web_config@v1"
INDEX_ENTRY_SCHEMA = "x07.index-entry@0.1.0"
INDEX_CATALOG_SCHEMA = "x07.index-catalog@0.1.0"

# JSON numbers keep their int-ness when decoded.
Number = Union[int, float]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ApiError(_Frozen):
    """
    The single error value crossing the client boundary.

    ``kind`` is one of the ``ErrorKind`` values; ``code`` is either the
    kind's default code or the code reported verbatim by the server.
    """

    kind: str
    code: str
    message: str
    url: Optional[str] = None
    http_status: Optional[int] = None
    request_id: Optional[str] = None
    line: Optional[int] = Field(
        default=None,
        description="1-based index file line number for BAD_INDEX failures.",
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RuntimeConfig(_Frozen):
    """
    Process bootstrap configuration loaded from the well-known document.
    """

    schema_tag: Literal["x07.registry_web_config@v1"] = RUNTIME_CONFIG_SCHEMA
    index_base_url: str = Field(description="Sparse index root, always ending in '/'.")
    catalog_relative_path: str = Field(description="Catalog path relative to the index root.")
    api_root_url: str = Field(description="OpenAPI document path, always starting with '/'.")


class IndexConfig(_Frozen):
    """
    The ``config.json`` document at the root of a sparse index.
    """

    download_base_url: str
    api_base_url: str
    auth_required: bool
    sparse: Literal[True] = True
    verified_namespaces: Optional[List[str]] = None


# ---------------------------------------------------------------------------
# Index content
# ---------------------------------------------------------------------------


class IndexEntry(_Frozen):
    """One line of a package's index file: one published version."""

    schema_version: Literal["x07.index-entry@0.1.0"] = INDEX_ENTRY_SCHEMA
    name: str
    version: str
    content_checksum: str
    yanked: bool


class PackageManifest(_Frozen):
    schema_version: str
    name: str
    description: Optional[str] = None
    version: str
    module_root: str
    modules: List[str]


class PackageMetadataResponse(_Frozen):
    ok: Literal[True] = True
    package: PackageManifest
    content_checksum: str


class CatalogPackage(_Frozen):
    name: str
    latest: Optional[str] = None


class Catalog(_Frozen):
    """Denormalized package listing. Not authoritative for resolution."""

    schema_version: Literal["x07.index-catalog@0.1.0"] = INDEX_CATALOG_SCHEMA
    packages: List[CatalogPackage]


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


class SearchHit(_Frozen):
    name: str
    latest_version: Optional[str] = None
    description: Optional[str] = None
    modules_count: Optional[Number] = None


class SearchResponse(_Frozen):
    ok: Literal[True] = True
    q: str
    limit: Number
    offset: Number
    total: Number
    packages: List[SearchHit]


class OwnersResponse(_Frozen):
    ok: Literal[True] = True
    name: str
    owners: List[str]


class AccountResponse(_Frozen):
    ok: Literal[True] = True
    user_id: str
    handle: str
    token_id: str
    scopes: List[str]


class AuthSessionUser(_Frozen):
    id: str
    handle: str
    github_user_id: Optional[Number] = None
    github_login: Optional[str] = None
    avatar_url: Optional[str] = None
    profile_url: Optional[str] = None
    email: Optional[str] = None
    email_verified: bool
    email_primary: bool
    is_admin: bool
    scopes: List[str]


class AuthSessionResponse(_Frozen):
    ok: Literal[True] = True
    authenticated: bool
    csrf_token: Optional[str] = None
    user: Optional[AuthSessionUser] = None


class TokenInfo(_Frozen):
    id: str
    label: str
    scopes: List[str]
    created_at: str
    last_used_at: Optional[str] = None
    revoked_at: Optional[str] = None


class TokenListResponse(_Frozen):
    ok: Literal[True] = True
    tokens: List[TokenInfo]


class TokenCreateResponse(_Frozen):
    ok: Literal[True] = True
    token_id: str
    token: str
    scopes: List[str]


class SimpleOkResponse(_Frozen):
    ok: Literal[True] = True


class YankResponse(_Frozen):
    ok: Literal[True] = True
    name: str
    version: str
    yanked: bool
