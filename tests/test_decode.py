import pytest

from x07_registry_client.api import decode
from x07_registry_client.domain.errors import DecodeError


def _index_entry(**overrides):
    doc = {
        "schema_version": "x07.index-entry@0.1.0",
        "name": "demo",
        "version": "1.0.0",
        "cksum": "sha256:00",
        "yanked": False,
    }
    doc.update(overrides)
    return doc


def _metadata(**package_overrides):
    package = {
        "schema_version": "x07.package@0.1.0",
        "name": "demo",
        "version": "1.0.0",
        "module_root": "modules",
        "modules": ["demo.main", "demo.util"],
    }
    package.update(package_overrides)
    return {"ok": True, "package": package, "cksum": "sha256:11"}


def test_index_entry_roundtrip_fields():
    entry = decode.decode_index_entry(_index_entry(yanked=True))
    assert entry.name == "demo"
    assert entry.version == "1.0.0"
    assert entry.content_checksum == "sha256:00"
    assert entry.yanked is True


def test_index_entry_wrong_schema_version_fails_even_if_well_typed():
    with pytest.raises(DecodeError, match="schema_version"):
        decode.decode_index_entry(_index_entry(schema_version="x07.index-entry@0.2.0"))


def test_index_entry_missing_schema_version_fails():
    doc = _index_entry()
    del doc["schema_version"]
    with pytest.raises(DecodeError, match="schema_version must be a string"):
        decode.decode_index_entry(doc)


@pytest.mark.parametrize(
    "field,message",
    [
        ("name", "name must be a string"),
        ("version", "version must be a string"),
        ("cksum", "cksum must be a string"),
        ("yanked", "yanked must be a boolean"),
    ],
)
def test_index_entry_missing_field_is_named(field, message):
    doc = _index_entry()
    del doc[field]
    with pytest.raises(DecodeError, match=message):
        decode.decode_index_entry(doc)


def test_index_entry_yanked_must_be_real_boolean():
    with pytest.raises(DecodeError, match="yanked must be a boolean"):
        decode.decode_index_entry(_index_entry(yanked=0))


def test_non_object_rejected():
    with pytest.raises(DecodeError, match="index entry must be an object"):
        decode.decode_index_entry(["not", "an", "object"])


def test_index_config_requires_literal_sparse_true():
    base = {"dl": "https://dl/", "api": "https://api/", "auth-required": False, "sparse": True}
    cfg = decode.decode_index_config(base)
    assert cfg.sparse is True
    assert cfg.verified_namespaces is None
    for bad in (False, 1, "true", None):
        with pytest.raises(DecodeError, match="sparse"):
            decode.decode_index_config({**base, "sparse": bad})


def test_index_config_verified_namespaces_elementwise():
    base = {"dl": "d", "api": "a", "auth-required": True, "sparse": True}
    cfg = decode.decode_index_config({**base, "verified-namespaces": ["acme", "x07"]})
    assert cfg.verified_namespaces == ["acme", "x07"]
    with pytest.raises(DecodeError, match="verified-namespaces must be an array of strings"):
        decode.decode_index_config({**base, "verified-namespaces": ["acme", 7]})


def test_metadata_response_nested_error_names_inner_field():
    doc = _metadata()
    doc["package"]["modules"] = ["ok", None]
    with pytest.raises(DecodeError, match="modules must be an array of strings"):
        decode.decode_package_metadata_response(doc)


def test_metadata_response_optional_description():
    resp = decode.decode_package_metadata_response(_metadata(description=None))
    assert resp.package.description is None
    assert resp.package.modules == ["demo.main", "demo.util"]
    assert resp.content_checksum == "sha256:11"
    with pytest.raises(DecodeError, match="description must be a string"):
        decode.decode_package_metadata_response(_metadata(description=5))


@pytest.mark.parametrize("ok", [None, False, 1, "true"])
def test_envelopes_require_ok_true(ok):
    doc = {"name": "demo", "owners": ["alice"]}
    if ok is not None:
        doc["ok"] = ok
    with pytest.raises(DecodeError, match="ok must be true"):
        decode.decode_owners_response(doc)


def test_catalog_schema_and_entries():
    catalog = decode.decode_catalog(
        {
            "schema_version": "x07.index-catalog@0.1.0",
            "packages": [{"name": "a"}, {"name": "b", "latest": "1.0.0"}],
        }
    )
    assert [p.name for p in catalog.packages] == ["a", "b"]
    assert catalog.packages[1].latest == "1.0.0"
    with pytest.raises(DecodeError, match="unsupported schema_version"):
        decode.decode_catalog({"schema_version": "x07.index-catalog@9", "packages": []})
    with pytest.raises(DecodeError, match="packages must be an array"):
        decode.decode_catalog({"schema_version": "x07.index-catalog@0.1.0", "packages": {}})


def test_search_response_numbers():
    resp = decode.decode_search_response(
        {
            "ok": True,
            "q": "demo",
            "limit": 20,
            "offset": 0,
            "total": 1,
            "packages": [{"name": "demo", "modules_count": 3, "latest_version": None}],
        }
    )
    assert resp.limit == 20 and isinstance(resp.limit, int)
    assert resp.packages[0].modules_count == 3
    with pytest.raises(DecodeError, match="limit must be a number"):
        decode.decode_search_response(
            {"ok": True, "q": "", "limit": True, "offset": 0, "total": 0, "packages": []}
        )
    with pytest.raises(DecodeError, match="total must be a number"):
        decode.decode_search_response(
            {"ok": True, "q": "", "limit": 1, "offset": 0, "total": "1", "packages": []}
        )


def test_token_list_decodes_each_token():
    resp = decode.decode_token_list_response(
        {
            "ok": True,
            "tokens": [
                {"id": "t1", "label": "ci", "scopes": ["publish"], "created_at": "2026-01-01T00:00:00Z"},
                {
                    "id": "t2",
                    "label": "old",
                    "scopes": [],
                    "created_at": "2025-01-01T00:00:00Z",
                    "revoked_at": "2025-06-01T00:00:00Z",
                },
            ],
        }
    )
    assert resp.tokens[0].revoked_at is None
    assert resp.tokens[1].revoked_at == "2025-06-01T00:00:00Z"
    with pytest.raises(DecodeError, match="created_at must be a string"):
        decode.decode_token_list_response({"ok": True, "tokens": [{"id": "t", "label": "l", "scopes": []}]})


def test_auth_session_with_and_without_user():
    anon = decode.decode_auth_session_response({"ok": True, "authenticated": False})
    assert anon.user is None and anon.csrf_token is None
    with pytest.raises(DecodeError, match="is_admin must be a boolean"):
        decode.decode_auth_session_response(
            {
                "ok": True,
                "authenticated": True,
                "user": {"id": "u", "handle": "h", "email_verified": True, "email_primary": True, "scopes": []},
            }
        )


def test_yank_and_simple_ok():
    resp = decode.decode_yank_response({"ok": True, "name": "demo", "version": "1.0.0", "yanked": True})
    assert resp.yanked is True
    assert decode.decode_simple_ok_response({"ok": True}).ok is True


def test_runtime_config_document_schema_tag():
    fields = decode.decode_runtime_config_document(
        {
            "schema": "x07.registry_web_config@v1",
            "index_base": "https://index/",
            "catalog_path": "catalog.json",
            "openapi_url": "/openapi.json",
        }
    )
    assert fields["index_base"] == "https://index/"
    with pytest.raises(DecodeError, match="unsupported runtime config schema"):
        decode.decode_runtime_config_document({"schema": "x07.registry_web_config@v2"})


def test_error_document_recognition():
    assert decode.decode_error_document({"code": "E", "message": "m"}) == {
        "code": "E",
        "message": "m",
        "request_id": None,
    }
    assert decode.decode_error_document({"code": "E"}) is None
    assert decode.decode_error_document("oops") is None
