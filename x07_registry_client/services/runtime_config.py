"""
Loading of the registry's runtime bootstrap configuration.

The bootstrap document is served from a fixed well-known path on the
registry web origin and names the sparse index root, the catalog path and the
API description URL. It is fetched once per loader; every failure is a
MISCONFIG error and is not cached, so the next ``load()`` retries.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional
from urllib.parse import urljoin, urlsplit

from x07_registry_client.api.decode import decode_runtime_config_document
from x07_registry_client.api.transport import BOOTSTRAP_TIMEOUT_SECONDS, Transport
from x07_registry_client.domain.errors import ApiClientError, DecodeError, ErrorKind
from x07_registry_client.domain.models import RuntimeConfig
from x07_registry_client.services.caching import SingleFlightCache

logger = logging.getLogger(__name__)

RUNTIME_CONFIG_PATH = "/x07-registry-web-config.json"

_CONFIG_KEY = "runtime-config"


def bootstrap_url_for(web_origin: str) -> str:
    """Resolve the well-known bootstrap path against a registry web origin."""
    return urljoin(web_origin, RUNTIME_CONFIG_PATH)


def normalize_index_base(raw: str) -> str:
    trimmed = raw.strip()
    if not trimmed:
        raise DecodeError("index_base must be non-empty")
    if not trimmed.endswith("/"):
        trimmed = f"{trimmed}/"
    try:
        parts = urlsplit(trimmed)
    except ValueError:
        parts = None
    if parts is None or not parts.scheme or not parts.netloc:
        raise DecodeError(f"index_base must be a valid URL: {trimmed}")
    return trimmed


def normalize_catalog_path(raw: str) -> str:
    trimmed = raw.strip()
    if not trimmed:
        raise DecodeError("catalog_path must be non-empty")
    stripped = trimmed.lstrip("/")
    if not stripped:
        raise DecodeError("catalog_path must be non-empty")
    return stripped


def normalize_openapi_url(raw: str) -> str:
    trimmed = raw.strip()
    if not trimmed:
        raise DecodeError("openapi_url must be non-empty")
    if trimmed.startswith("/"):
        return trimmed
    return f"/{trimmed}"


def build_runtime_config(fields: Dict[str, str]) -> RuntimeConfig:
    return RuntimeConfig(
        index_base_url=normalize_index_base(fields["index_base"]),
        catalog_relative_path=normalize_catalog_path(fields["catalog_path"]),
        api_root_url=normalize_openapi_url(fields["openapi_url"]),
    )


class RuntimeConfigLoader:
    """
    Single-flight loader for the bootstrap ``RuntimeConfig``.
    """

    def __init__(
        self,
        transport: Transport,
        bootstrap_url: str,
        timeout: float = BOOTSTRAP_TIMEOUT_SECONDS,
    ):
        self.transport = transport
        self.bootstrap_url = bootstrap_url
        self.timeout = timeout
        self._cache: SingleFlightCache[str, RuntimeConfig] = SingleFlightCache("runtime-config")

    async def load(self) -> RuntimeConfig:
        return await self._cache.get_or_fetch(_CONFIG_KEY, self._fetch)

    def reset(self) -> None:
        self._cache.clear()

    @property
    def loaded(self) -> bool:
        return _CONFIG_KEY in self._cache

    def _misconfig(self, message: str, http_status: Optional[int] = None) -> ApiClientError:
        return ApiClientError.of(
            ErrorKind.MISCONFIG, message, url=self.bootstrap_url, http_status=http_status
        )

    async def _fetch(self) -> RuntimeConfig:
        url = self.bootstrap_url
        logger.info(f"Loading runtime config from {url}")
        try:
            config = await self.transport.fetch_json(
                url,
                lambda raw: build_runtime_config(decode_runtime_config_document(raw)),
                self.timeout,
                headers={"Cache-Control": "no-store"},
            )
        except ApiClientError as e:
            err = e.error
            if err.kind == ErrorKind.HTTP.value:
                raise self._misconfig(
                    f"failed to load runtime config: HTTP {err.http_status}", err.http_status
                ) from e
            if err.kind == ErrorKind.TIMEOUT.value:
                raise self._misconfig("runtime config request timed out") from e
            if err.kind == ErrorKind.BAD_JSON.value:
                raise self._misconfig(f"runtime config was not valid JSON: {err.message}") from e
            raise self._misconfig(err.message) from e

        logger.info(
            f"Runtime config loaded: index={config.index_base_url} "
            f"catalog={config.catalog_relative_path}"
        )
        return config
