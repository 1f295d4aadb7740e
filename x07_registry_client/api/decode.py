"""
Strict decoders for every document the registry client receives.

Each ``decode_*`` function takes an untyped JSON value (as returned by
``json.loads``) and either returns a frozen model or raises ``DecodeError``
naming the first offending field. Discriminants (``ok``, ``sparse``,
``schema_version``) are compared for exact equality, and nested objects are
decoded by their own decoder so the innermost message surfaces unchanged.
"""
from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional, Union

from x07_registry_client.domain.errors import DecodeError
from x07_registry_client.domain.models import (
    INDEX_CATALOG_SCHEMA,
    INDEX_ENTRY_SCHEMA,
    RUNTIME_CONFIG_SCHEMA,
    AccountResponse,
    AuthSessionResponse,
    AuthSessionUser,
    Catalog,
    CatalogPackage,
    IndexConfig,
    IndexEntry,
    OwnersResponse,
    PackageManifest,
    PackageMetadataResponse,
    SearchHit,
    SearchResponse,
    SimpleOkResponse,
    TokenCreateResponse,
    TokenInfo,
    TokenListResponse,
    YankResponse,
)

JsonValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def parse_json(text: str) -> JsonValue:
    """``json.loads`` restricted to RFC 8259: NaN and Infinity raise ValueError."""
    return json.loads(text, parse_constant=_reject_constant)


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def expect_record(value: JsonValue, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"{what} must be an object")
    return value


def expect_string(value: JsonValue, field: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"{field} must be a string")
    return value


def expect_bool(value: JsonValue, field: str) -> bool:
    if not isinstance(value, bool):
        raise DecodeError(f"{field} must be a boolean")
    return value


def expect_number(value: JsonValue, field: str) -> Union[int, float]:
    # bool is an int subclass; JSON true/false are not numbers.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{field} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise DecodeError(f"{field} must be a number")
    return value


def expect_string_array(value: JsonValue, field: str) -> List[str]:
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise DecodeError(f"{field} must be an array of strings")
    return list(value)


def expect_array(value: JsonValue, field: str) -> List[Any]:
    if not isinstance(value, list):
        raise DecodeError(f"{field} must be an array")
    return value


def expect_optional_string(value: JsonValue, field: str) -> Optional[str]:
    if value is None:
        return None
    return expect_string(value, field)


def expect_optional_number(value: JsonValue, field: str) -> Optional[Union[int, float]]:
    if value is None:
        return None
    return expect_number(value, field)


def expect_optional_string_array(value: JsonValue, field: str) -> Optional[List[str]]:
    if value is None:
        return None
    return expect_string_array(value, field)


def expect_literal(value: JsonValue, expected: Any, field: str) -> Any:
    # `1 == True` in Python, so the type must match too.
    if type(value) is not type(expected) or value != expected:
        raise DecodeError(f"{field} must be {expected!r}")
    return expected


def expect_ok(raw: Dict[str, Any], what: str) -> None:
    if raw.get("ok") is not True:
        raise DecodeError(f"{what} ok must be true")


def expect_schema_version(raw: Dict[str, Any], expected: str, field: str = "schema_version") -> str:
    value = expect_string(raw.get(field), field)
    if value != expected:
        raise DecodeError(f"unsupported {field}: {value}")
    return value


# ---------------------------------------------------------------------------
# Index documents
# ---------------------------------------------------------------------------


def decode_runtime_config_document(raw: JsonValue) -> Dict[str, str]:
    """
    Check the bootstrap document's shape and schema tag.

    Returns the raw string fields; normalization is done by the loader.
    """
    doc = expect_record(raw, "runtime config")
    schema = expect_string(doc.get("schema"), "schema")
    if schema != RUNTIME_CONFIG_SCHEMA:
        raise DecodeError(f"unsupported runtime config schema: {schema}")
    return {
        "index_base": expect_string(doc.get("index_base"), "index_base"),
        "catalog_path": expect_string(doc.get("catalog_path"), "catalog_path"),
        "openapi_url": expect_string(doc.get("openapi_url"), "openapi_url"),
    }


def decode_index_config(raw: JsonValue) -> IndexConfig:
    doc = expect_record(raw, "index config")
    dl = expect_string(doc.get("dl"), "dl")
    api = expect_string(doc.get("api"), "api")
    auth_required = expect_bool(doc.get("auth-required"), "auth-required")
    expect_literal(doc.get("sparse"), True, "sparse")
    verified = expect_optional_string_array(doc.get("verified-namespaces"), "verified-namespaces")
    return IndexConfig(
        download_base_url=dl,
        api_base_url=api,
        auth_required=auth_required,
        sparse=True,
        verified_namespaces=verified,
    )


def decode_index_entry(raw: JsonValue) -> IndexEntry:
    doc = expect_record(raw, "index entry")
    expect_schema_version(doc, INDEX_ENTRY_SCHEMA)
    return IndexEntry(
        name=expect_string(doc.get("name"), "name"),
        version=expect_string(doc.get("version"), "version"),
        content_checksum=expect_string(doc.get("cksum"), "cksum"),
        yanked=expect_bool(doc.get("yanked"), "yanked"),
    )


def decode_catalog(raw: JsonValue) -> Catalog:
    doc = expect_record(raw, "catalog")
    expect_schema_version(doc, INDEX_CATALOG_SCHEMA)
    packages = []
    for item in expect_array(doc.get("packages"), "packages"):
        pkg = expect_record(item, "package")
        packages.append(
            CatalogPackage(
                name=expect_string(pkg.get("name"), "name"),
                latest=expect_optional_string(pkg.get("latest"), "latest"),
            )
        )
    return Catalog(packages=packages)


def decode_package_manifest(raw: JsonValue) -> PackageManifest:
    doc = expect_record(raw, "package manifest")
    return PackageManifest(
        schema_version=expect_string(doc.get("schema_version"), "schema_version"),
        name=expect_string(doc.get("name"), "name"),
        description=expect_optional_string(doc.get("description"), "description"),
        version=expect_string(doc.get("version"), "version"),
        module_root=expect_string(doc.get("module_root"), "module_root"),
        modules=expect_string_array(doc.get("modules"), "modules"),
    )


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


def decode_package_metadata_response(raw: JsonValue) -> PackageMetadataResponse:
    doc = expect_record(raw, "metadata response")
    expect_ok(doc, "metadata response")
    package = decode_package_manifest(doc.get("package"))
    return PackageMetadataResponse(
        package=package,
        content_checksum=expect_string(doc.get("cksum"), "cksum"),
    )


def decode_search_hit(raw: JsonValue) -> SearchHit:
    doc = expect_record(raw, "package")
    return SearchHit(
        name=expect_string(doc.get("name"), "name"),
        latest_version=expect_optional_string(doc.get("latest_version"), "latest_version"),
        description=expect_optional_string(doc.get("description"), "description"),
        modules_count=expect_optional_number(doc.get("modules_count"), "modules_count"),
    )


def decode_search_response(raw: JsonValue) -> SearchResponse:
    doc = expect_record(raw, "search response")
    expect_ok(doc, "search response")
    return SearchResponse(
        q=expect_string(doc.get("q"), "q"),
        limit=expect_number(doc.get("limit"), "limit"),
        offset=expect_number(doc.get("offset"), "offset"),
        total=expect_number(doc.get("total"), "total"),
        packages=[decode_search_hit(p) for p in expect_array(doc.get("packages"), "packages")],
    )


def decode_owners_response(raw: JsonValue) -> OwnersResponse:
    doc = expect_record(raw, "owners response")
    expect_ok(doc, "owners response")
    return OwnersResponse(
        name=expect_string(doc.get("name"), "name"),
        owners=expect_string_array(doc.get("owners"), "owners"),
    )


def decode_account_response(raw: JsonValue) -> AccountResponse:
    doc = expect_record(raw, "account response")
    expect_ok(doc, "account response")
    return AccountResponse(
        user_id=expect_string(doc.get("user_id"), "user_id"),
        handle=expect_string(doc.get("handle"), "handle"),
        token_id=expect_string(doc.get("token_id"), "token_id"),
        scopes=expect_string_array(doc.get("scopes"), "scopes"),
    )


def decode_auth_session_user(raw: JsonValue) -> AuthSessionUser:
    doc = expect_record(raw, "user")
    return AuthSessionUser(
        id=expect_string(doc.get("id"), "id"),
        handle=expect_string(doc.get("handle"), "handle"),
        github_user_id=expect_optional_number(doc.get("github_user_id"), "github_user_id"),
        github_login=expect_optional_string(doc.get("github_login"), "github_login"),
        avatar_url=expect_optional_string(doc.get("avatar_url"), "avatar_url"),
        profile_url=expect_optional_string(doc.get("profile_url"), "profile_url"),
        email=expect_optional_string(doc.get("email"), "email"),
        email_verified=expect_bool(doc.get("email_verified"), "email_verified"),
        email_primary=expect_bool(doc.get("email_primary"), "email_primary"),
        is_admin=expect_bool(doc.get("is_admin"), "is_admin"),
        scopes=expect_string_array(doc.get("scopes"), "scopes"),
    )


def decode_auth_session_response(raw: JsonValue) -> AuthSessionResponse:
    doc = expect_record(raw, "auth session response")
    expect_ok(doc, "auth session response")
    user_raw = doc.get("user")
    return AuthSessionResponse(
        authenticated=expect_bool(doc.get("authenticated"), "authenticated"),
        csrf_token=expect_optional_string(doc.get("csrf_token"), "csrf_token"),
        user=decode_auth_session_user(user_raw) if user_raw is not None else None,
    )


def decode_token_info(raw: JsonValue) -> TokenInfo:
    doc = expect_record(raw, "token")
    return TokenInfo(
        id=expect_string(doc.get("id"), "id"),
        label=expect_string(doc.get("label"), "label"),
        scopes=expect_string_array(doc.get("scopes"), "scopes"),
        created_at=expect_string(doc.get("created_at"), "created_at"),
        last_used_at=expect_optional_string(doc.get("last_used_at"), "last_used_at"),
        revoked_at=expect_optional_string(doc.get("revoked_at"), "revoked_at"),
    )


def decode_token_list_response(raw: JsonValue) -> TokenListResponse:
    doc = expect_record(raw, "token list response")
    expect_ok(doc, "token list response")
    return TokenListResponse(
        tokens=[decode_token_info(t) for t in expect_array(doc.get("tokens"), "tokens")],
    )


def decode_token_create_response(raw: JsonValue) -> TokenCreateResponse:
    doc = expect_record(raw, "token create response")
    expect_ok(doc, "token create response")
    return TokenCreateResponse(
        token_id=expect_string(doc.get("token_id"), "token_id"),
        token=expect_string(doc.get("token"), "token"),
        scopes=expect_string_array(doc.get("scopes"), "scopes"),
    )


def decode_simple_ok_response(raw: JsonValue) -> SimpleOkResponse:
    doc = expect_record(raw, "response")
    expect_ok(doc, "response")
    return SimpleOkResponse()


def decode_yank_response(raw: JsonValue) -> YankResponse:
    doc = expect_record(raw, "yank response")
    expect_ok(doc, "yank response")
    return YankResponse(
        name=expect_string(doc.get("name"), "name"),
        version=expect_string(doc.get("version"), "version"),
        yanked=expect_bool(doc.get("yanked"), "yanked"),
    )


def decode_error_document(raw: JsonValue) -> Optional[Dict[str, Optional[str]]]:
    """
    Recognize a structured error body ``{code, message, request_id?}``.

    Returns None rather than raising when the body is not one.
    """
    if not isinstance(raw, dict):
        return None
    code, message = raw.get("code"), raw.get("message")
    if not isinstance(code, str) or not isinstance(message, str):
        return None
    request_id = raw.get("request_id")
    return {
        "code": code,
        "message": message,
        "request_id": request_id if isinstance(request_id, str) else None,
    }
