"""
Storage for the single API token string.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import logging

import aiofiles

logger = logging.getLogger(__name__)


class TokenStore(ABC):
    """
    Abstract base class for API token storage.
    """

    @abstractmethod
    async def load(self) -> Optional[str]:
        """Return the stored token, or None when nothing usable is stored."""
        pass

    @abstractmethod
    async def store(self, token: str) -> None:
        """Store a token. Blank tokens are ignored."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove the stored token."""
        pass


class MemoryTokenStore(TokenStore):
    def __init__(self, token: Optional[str] = None):
        self._token = (token or "").strip() or None

    async def load(self) -> Optional[str]:
        return self._token

    async def store(self, token: str) -> None:
        trimmed = (token or "").strip()
        if trimmed:
            self._token = trimmed

    async def clear(self) -> None:
        self._token = None


class FileTokenStore(TokenStore):
    def __init__(self, path: Path):
        self._path = path

    async def load(self) -> Optional[str]:
        if not self._path.exists():
            return None
        async with aiofiles.open(self._path, "r", encoding="utf-8") as f:
            raw = await f.read()
        token = raw.strip()
        return token or None

    async def store(self, token: str) -> None:
        trimmed = (token or "").strip()
        if not trimmed:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp file first so a crash never leaves a truncated token.
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(trimmed + "\n")
        tmp_path.chmod(0o600)
        tmp_path.replace(self._path)
        logger.debug(f"Stored registry token at {self._path}")

    async def clear(self) -> None:
        self._path.unlink(missing_ok=True)
