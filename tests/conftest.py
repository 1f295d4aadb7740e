import asyncio
import json
from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from x07_registry_client.api.auth import AuthStrategy
from x07_registry_client.api.transport import Transport
from x07_registry_client.services.registry import RegistryClient
from x07_registry_client.services.runtime_config import RuntimeConfigLoader, bootstrap_url_for

# tests/conftest.py

ORIGIN = "http://registry.test"
INDEX_BASE = f"{ORIGIN}/index/"
API_BASE = f"{ORIGIN}/api/"
DL_BASE = f"{ORIGIN}/dl"
GOOD_TOKEN = "good-token"
CSRF_TOKEN = "csrf-1"


def entry_line(name: str, version: str, yanked: bool = False, cksum: str = "sha256:00") -> str:
    return json.dumps(
        {
            "schema_version": "x07.index-entry@0.1.0",
            "name": name,
            "version": version,
            "cksum": cksum,
            "yanked": yanked,
        }
    )


def _error(status: int, code: str, message: str, request_id: Optional[str] = None) -> JSONResponse:
    body: Dict[str, Any] = {"code": code, "message": message}
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(body, status_code=status)


class FakeRegistry:
    """
    In-process registry: web origin, sparse index and API on one FastAPI app.

    Every request is recorded before the optional ``delay`` so concurrent
    callers can be counted while the "server" is slow.
    """

    def __init__(self):
        self.web_config: Dict[str, Any] = {
            "schema": "x07.registry_web_config@v1",
            "index_base": INDEX_BASE,
            "catalog_path": "/catalog.json",
            "openapi_url": "openapi.json",
        }
        self.index_config: Dict[str, Any] = {
            "dl": DL_BASE,
            "api": API_BASE,
            "auth-required": True,
            "sparse": True,
            "verified-namespaces": ["acme"],
        }
        self.index_files: Dict[str, str] = {}
        self.manifests: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.owners: Dict[str, List[str]] = {}
        self.tokens: List[Dict[str, Any]] = []
        self.overrides: Dict[str, Tuple[int, str]] = {}
        self.delay = 0.0
        self.last_yank_body: Optional[Dict[str, Any]] = None
        self.hits: Counter = Counter()
        self.calls: List[Dict[str, Any]] = []
        self.app = self._build_app()

    # -- helpers ---------------------------------------------------------

    def add_index_file(self, path: str, lines: List[str]) -> None:
        self.index_files[path] = "\n".join(lines) + "\n"

    def add_manifest(self, name: str, version: str, cksum: str = "sha256:abc") -> None:
        self.manifests[(name, version)] = {
            "ok": True,
            "cksum": cksum,
            "package": {
                "schema_version": "x07.package@0.1.0",
                "name": name,
                "description": f"{name} package",
                "version": version,
                "module_root": "modules",
                "modules": [f"{name.replace('-', '_')}.main"],
            },
        }

    def last_call(self, path: str) -> Dict[str, Any]:
        return [c for c in self.calls if c["path"] == path][-1]

    def transport(self) -> httpx.ASGITransport:
        return httpx.ASGITransport(app=self._record)

    async def _record(self, scope, receive, send):
        if scope["type"] == "http":
            path = scope["path"]
            self.hits[path] += 1
            self.calls.append(
                {
                    "method": scope["method"],
                    "path": path,
                    "query": scope.get("query_string", b"").decode(),
                    "headers": {k.decode().lower(): v.decode() for k, v in scope["headers"]},
                }
            )
            if self.delay:
                await asyncio.sleep(self.delay)
            override = self.overrides.get(path)
            if override is not None:
                status, body = override
                await Response(body, status_code=status, media_type="application/json")(
                    scope, receive, send
                )
                return
        await self.app(scope, receive, send)

    def _bearer_ok(self, request: Request) -> bool:
        return request.headers.get("authorization") == f"Bearer {GOOD_TOKEN}"

    def _mutation_ok(self, request: Request) -> bool:
        return self._bearer_ok(request) or request.headers.get("x-csrf-token") == CSRF_TOKEN

    # -- routes ----------------------------------------------------------

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        state = self

        @app.get("/x07-registry-web-config.json")
        async def web_config():
            return JSONResponse(state.web_config)

        @app.get("/index/config.json")
        async def index_config():
            return JSONResponse(state.index_config)

        @app.get("/index/catalog.json")
        async def catalog():
            return JSONResponse(
                {
                    "schema_version": "x07.index-catalog@0.1.0",
                    "packages": [{"name": n} for n in sorted({k[0] for k in state.manifests})],
                }
            )

        @app.get("/index/{path:path}")
        async def index_file(path: str):
            if path not in state.index_files:
                return _error(404, "X07REG_NOT_FOUND", f"no index file {path}")
            return PlainTextResponse(state.index_files[path])

        @app.get("/api/search")
        async def search(q: str = "", limit: int = 20, offset: int = 0):
            names = sorted({k[0] for k in state.manifests if q in k[0]})
            return {
                "ok": True,
                "q": q,
                "limit": limit,
                "offset": offset,
                "total": len(names),
                "packages": [{"name": n, "latest_version": None} for n in names[offset:offset + limit]],
            }

        @app.get("/api/packages/{name}/owners")
        async def owners(name: str):
            return {"ok": True, "name": name, "owners": state.owners.get(name, [])}

        @app.get("/api/packages/{name}/{version}/metadata")
        async def metadata(name: str, version: str):
            doc = state.manifests.get((name, version))
            if doc is None:
                return _error(404, "X07REG_NOT_FOUND", f"{name}@{version} not found", "req-404")
            return doc

        @app.post("/api/packages/{name}/{version}/yank")
        async def yank(name: str, version: str, request: Request):
            if not state._mutation_ok(request):
                return _error(401, "X07REG_UNAUTHORIZED", "authentication required")
            body = await request.json()
            state.last_yank_body = body
            return {"ok": True, "name": name, "version": version, "yanked": body["yanked"]}

        @app.get("/api/account")
        async def account(request: Request):
            if not state._bearer_ok(request):
                return _error(401, "X07REG_UNAUTHORIZED", "authentication required")
            return {"ok": True, "user_id": "u1", "handle": "alice", "token_id": "t1", "scopes": ["publish"]}

        @app.get("/api/auth/session")
        async def auth_session():
            return {
                "ok": True,
                "authenticated": True,
                "csrf_token": CSRF_TOKEN,
                "user": {
                    "id": "u1",
                    "handle": "alice",
                    "github_user_id": 42,
                    "email_verified": True,
                    "email_primary": True,
                    "is_admin": False,
                    "scopes": ["publish"],
                },
            }

        @app.post("/api/auth/logout")
        async def logout(request: Request):
            if not state._mutation_ok(request):
                return _error(403, "X07REG_CSRF", "missing anti-forgery token")
            return {"ok": True}

        @app.get("/api/tokens")
        async def list_tokens(request: Request):
            if not state._bearer_ok(request):
                return _error(401, "X07REG_UNAUTHORIZED", "authentication required")
            return {"ok": True, "tokens": state.tokens}

        @app.post("/api/tokens")
        async def create_token(request: Request):
            if not state._mutation_ok(request):
                return _error(401, "X07REG_UNAUTHORIZED", "authentication required")
            body = await request.json()
            token_id = f"t{len(state.tokens) + 1}"
            state.tokens.append(
                {
                    "id": token_id,
                    "label": body["label"],
                    "scopes": body["scopes"],
                    "created_at": "2026-01-01T00:00:00Z",
                }
            )
            return {"ok": True, "token_id": token_id, "token": "secret-value", "scopes": body["scopes"]}

        @app.post("/api/tokens/{token_id}/revoke")
        async def revoke_token(token_id: str, request: Request):
            if not state._mutation_ok(request):
                return _error(401, "X07REG_UNAUTHORIZED", "authentication required")
            return {"ok": True}

        return app


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def make_client(registry) -> Callable[..., RegistryClient]:
    """
    Return a factory for clients wired to the fake registry.
    Usage: client = make_client(auth=BearerAuth("good-token"), timeout=1.0)
    Must be called inside the event loop that will use the client.
    """
    def _make(auth: Optional[AuthStrategy] = None, timeout: float = 5.0) -> RegistryClient:
        http = httpx.AsyncClient(transport=registry.transport())
        transport = Transport(http, default_timeout=timeout)
        loader = RuntimeConfigLoader(transport, bootstrap_url_for(ORIGIN), timeout=timeout)
        return RegistryClient(loader, transport, auth)
    return _make


@pytest.fixture
def run() -> Callable:
    """Run an async scenario to completion on a fresh event loop."""
    def _run(coro):
        return asyncio.run(coro)
    return _run
