"""
Fetching and parsing of per-package sparse index files.
"""
from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin

from x07_registry_client.api.decode import decode_index_entry, parse_json
from x07_registry_client.api.transport import Transport
from x07_registry_client.domain.errors import ApiClientError, DecodeError, ErrorKind
from x07_registry_client.domain.models import IndexEntry
from x07_registry_client.domain.registry_utils import index_path
from x07_registry_client.services.caching import SingleFlightCache
from x07_registry_client.services.runtime_config import RuntimeConfigLoader

logger = logging.getLogger(__name__)


def parse_index_lines(text: str, url: Optional[str] = None) -> List[IndexEntry]:
    """
    Parse newline-delimited index entries, in file order.

    Blank lines are skipped. Any bad line fails the whole file with a
    BAD_INDEX error naming its 1-based line number.
    """
    entries: List[IndexEntry] = []
    for lineno, line in enumerate(text.split("\n"), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        try:
            raw = parse_json(trimmed)
        except ValueError:
            raise ApiClientError.of(
                ErrorKind.BAD_INDEX, f"invalid ndjson line {lineno}", url=url, line=lineno
            )
        try:
            entries.append(decode_index_entry(raw))
        except DecodeError as e:
            raise ApiClientError.of(
                ErrorKind.BAD_INDEX,
                f"invalid index entry line {lineno}: {e}",
                url=url,
                line=lineno,
            )
    return entries


class IndexEntryFetcher:
    """
    Per-package index entries, coalesced and cached by package name.

    Entries are publish-once (only ``yanked`` ever changes), so results are
    kept until ``invalidate`` or ``reset`` is called.
    """

    def __init__(
        self,
        transport: Transport,
        config_loader: RuntimeConfigLoader,
        cache: Optional[SingleFlightCache[str, List[IndexEntry]]] = None,
    ):
        self.transport = transport
        self.config_loader = config_loader
        self.cache = cache if cache is not None else SingleFlightCache("index-entries")

    async def index_url(self, name: str) -> str:
        path = index_path(name)
        config = await self.config_loader.load()
        return urljoin(config.index_base_url, path)

    async def get_entries(self, name: str) -> List[IndexEntry]:
        # Raises PackageNameError before touching the cache or the network.
        index_path(name)
        entries = await self.cache.get_or_fetch(name, lambda: self._fetch(name))
        return list(entries)

    async def _fetch(self, name: str) -> List[IndexEntry]:
        url = await self.index_url(name)
        text = await self.transport.fetch_text(url)
        entries = parse_index_lines(text, url)
        logger.debug(f"Loaded {len(entries)} index entries for {name}")
        return entries

    def invalidate(self, name: str) -> None:
        self.cache.invalidate(name)

    def reset(self) -> None:
        self.cache.clear()
