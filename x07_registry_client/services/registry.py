"""
Registry client facade.

``RegistryClient`` composes the runtime config loader, the sparse index
fetchers and the mutation API into the operations callers use:
- Index config, index entries and package metadata are coalesced and cached
  (per process lifetime of the client, evicted on failure)
- Search, owners, tokens, auth session and yank always issue a fresh request
"""
from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote, urlencode, urljoin

import httpx

from x07_registry_client.api.auth import AuthStrategy, NoAuth
from x07_registry_client.api.decode import (
    decode_account_response,
    decode_auth_session_response,
    decode_catalog,
    decode_index_config,
    decode_owners_response,
    decode_package_metadata_response,
    decode_search_response,
    decode_simple_ok_response,
    decode_token_create_response,
    decode_token_list_response,
    decode_yank_response,
)
from x07_registry_client.api.transport import DEFAULT_TIMEOUT_SECONDS, Transport
from x07_registry_client.domain import registry_utils
from x07_registry_client.domain.errors import ApiClientError, ErrorKind
from x07_registry_client.domain.models import (
    AccountResponse,
    AuthSessionResponse,
    Catalog,
    IndexConfig,
    IndexEntry,
    OwnersResponse,
    PackageMetadataResponse,
    SearchResponse,
    SimpleOkResponse,
    TokenCreateResponse,
    TokenListResponse,
    YankResponse,
)
from x07_registry_client.domain.registry_utils import validate_package_name
from x07_registry_client.services.caching import SingleFlightCache
from x07_registry_client.services.index_entries import IndexEntryFetcher
from x07_registry_client.services.runtime_config import RuntimeConfigLoader, bootstrap_url_for

logger = logging.getLogger(__name__)

_INDEX_CONFIG_KEY = "index-config"


def _segment(value: str) -> str:
    return quote(value, safe="")


class RegistryClient:
    """
    Entry point for sparse index resolution and the registry API.
    """

    def __init__(
        self,
        config_loader: RuntimeConfigLoader,
        transport: Optional[Transport] = None,
        auth: Optional[AuthStrategy] = None,
    ):
        self.transport = transport or config_loader.transport
        self.config_loader = config_loader
        self.auth = auth or NoAuth()
        self.entries = IndexEntryFetcher(self.transport, config_loader)
        self._index_config: SingleFlightCache[str, IndexConfig] = SingleFlightCache("index-config")
        self._metadata: SingleFlightCache[str, PackageMetadataResponse] = SingleFlightCache(
            "package-metadata"
        )

    @classmethod
    def create(
        cls,
        web_origin: str,
        auth: Optional[AuthStrategy] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> "RegistryClient":
        """Build a client bootstrapping from ``web_origin``'s well-known config."""
        transport = Transport(client, default_timeout=timeout)
        loader = RuntimeConfigLoader(transport, bootstrap_url_for(web_origin))
        return cls(loader, transport, auth)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "RegistryClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def reset_caches(self) -> None:
        self.config_loader.reset()
        self.entries.reset()
        self._index_config.clear()
        self._metadata.clear()

    # ========================================================================
    # Sparse index
    # ========================================================================

    async def index_url(self, path: str) -> str:
        config = await self.config_loader.load()
        return urljoin(config.index_base_url, path.lstrip("/"))

    async def get_index_config(self) -> IndexConfig:
        return await self._index_config.get_or_fetch(_INDEX_CONFIG_KEY, self._fetch_index_config)

    async def _fetch_index_config(self) -> IndexConfig:
        url = await self.index_url("config.json")
        try:
            config = await self.transport.fetch_json(url, decode_index_config)
        except ApiClientError as e:
            # A reachable index with an unusable config.json is a deployment error.
            if e.kind in (ErrorKind.BAD_JSON, ErrorKind.BAD_RESPONSE):
                raise ApiClientError.of(
                    ErrorKind.MISCONFIG, f"invalid index config: {e.error.message}", url=url
                ) from e
            raise
        logger.info(f"Index config loaded: api={config.api_base_url} dl={config.download_base_url}")
        return config

    async def get_catalog(self) -> Catalog:
        config = await self.config_loader.load()
        url = await self.index_url(config.catalog_relative_path)
        return await self.transport.fetch_json(url, decode_catalog)

    async def get_entries(self, name: str) -> List[IndexEntry]:
        return await self.entries.get_entries(name)

    async def get_latest_version(self, name: str) -> Optional[str]:
        """Latest non-yanked, semver-valid version of ``name``, or None."""
        return registry_utils.latest_usable_version(await self.get_entries(name))

    async def download_url(self, name: str, version: str) -> str:
        validate_package_name(name)
        config = await self.get_index_config()
        return registry_utils.download_url(config.download_base_url, name, version)

    async def openapi_url(self) -> str:
        """Absolute URL of the API's OpenAPI document, served by the web origin."""
        config = await self.config_loader.load()
        return urljoin(self.config_loader.bootstrap_url, config.api_root_url)

    # ========================================================================
    # Package metadata
    # ========================================================================

    async def api_url(self, path: str) -> str:
        config = await self.get_index_config()
        base = config.api_base_url
        if not base.endswith("/"):
            base = f"{base}/"
        return urljoin(base, path)

    async def get_metadata(self, name: str, version: str) -> PackageMetadataResponse:
        """
        Manifest and checksum for ``name@version``, coalesced per pair.

        Only the name is validated; a bad version surfaces as the server's
        HTTP error.
        """
        validate_package_name(name)
        key = f"{name}@{version}"
        return await self._metadata.get_or_fetch(key, lambda: self._fetch_metadata(name, version))

    async def _fetch_metadata(self, name: str, version: str) -> PackageMetadataResponse:
        url = await self.api_url(f"packages/{name}/{_segment(version)}/metadata")
        return await self.transport.fetch_json(url, decode_package_metadata_response)

    # ========================================================================
    # Uncached API calls
    # ========================================================================

    async def search_packages(self, q: str, limit: int = 20, offset: int = 0) -> SearchResponse:
        params = {}
        if q.strip():
            params["q"] = q.strip()
        params["limit"] = str(limit)
        params["offset"] = str(offset)
        url = await self.api_url(f"search?{urlencode(params)}")
        return await self.transport.fetch_json(url, decode_search_response)

    async def get_owners(self, name: str) -> OwnersResponse:
        validate_package_name(name)
        url = await self.api_url(f"packages/{name}/owners")
        return await self.transport.fetch_json(url, decode_owners_response)

    async def get_account(self) -> AccountResponse:
        headers = self.auth.headers(mutating=False)
        url = await self.api_url("account")
        return await self.transport.fetch_json(url, decode_account_response, headers=headers)

    async def get_auth_session(self) -> AuthSessionResponse:
        headers = self.auth.headers(mutating=False)
        url = await self.api_url("auth/session")
        session = await self.transport.fetch_json(url, decode_auth_session_response, headers=headers)
        self.auth.on_session(session.csrf_token)
        return session

    async def logout(self) -> SimpleOkResponse:
        headers = self.auth.headers(mutating=True)
        url = await self.api_url("auth/logout")
        result = await self.transport.fetch_json(
            url, decode_simple_ok_response, method="POST", headers=headers
        )
        self.auth.on_logout()
        return result

    async def list_tokens(self) -> TokenListResponse:
        headers = self.auth.headers(mutating=False)
        url = await self.api_url("tokens")
        return await self.transport.fetch_json(url, decode_token_list_response, headers=headers)

    async def create_token(self, label: str, scopes: List[str]) -> TokenCreateResponse:
        headers = self.auth.headers(mutating=True)
        url = await self.api_url("tokens")
        return await self.transport.fetch_json(
            url,
            decode_token_create_response,
            method="POST",
            headers=headers,
            json_body={"label": label, "scopes": list(scopes)},
        )

    async def revoke_token(self, token_id: str) -> SimpleOkResponse:
        headers = self.auth.headers(mutating=True)
        url = await self.api_url(f"tokens/{_segment(token_id)}/revoke")
        return await self.transport.fetch_json(
            url, decode_simple_ok_response, method="POST", headers=headers
        )

    async def yank_version(self, name: str, version: str, yanked: bool) -> YankResponse:
        validate_package_name(name)
        headers = self.auth.headers(mutating=True)
        url = await self.api_url(f"packages/{name}/{_segment(version)}/yank")
        result = await self.transport.fetch_json(
            url,
            decode_yank_response,
            method="POST",
            headers=headers,
            json_body={"yanked": yanked},
        )
        # The index file for this package now carries a different yanked flag.
        self.entries.invalidate(name)
        return result
