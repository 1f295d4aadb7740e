from typing import Optional

from x07_registry_client.api.auth import AuthStrategy, BearerAuth, NoAuth, SessionAuth
from x07_registry_client.core.settings import ClientSettings
from x07_registry_client.services.registry import RegistryClient
from x07_registry_client.storage.token_store import FileTokenStore, TokenStore

_settings: Optional[ClientSettings] = None
_token_store: Optional[TokenStore] = None
_registry_client: Optional[RegistryClient] = None

def get_settings() -> ClientSettings:
    global _settings
    if _settings is None:
        _settings = ClientSettings.from_env()
    return _settings

def get_token_store() -> TokenStore:
    global _token_store
    if _token_store is None:
        _token_store = FileTokenStore(get_settings().token_file)
    return _token_store

async def build_auth(settings: ClientSettings, token_store: TokenStore) -> AuthStrategy:
    if settings.auth_mode == "session":
        return SessionAuth()
    if settings.auth_mode == "bearer":
        token = (settings.token or "").strip() or await token_store.load()
        if token:
            return BearerAuth(token)
    return NoAuth()

async def get_registry_client() -> RegistryClient:
    global _registry_client
    if _registry_client is None:
        settings = get_settings()
        auth = await build_auth(settings, get_token_store())
        # Another caller may have finished while the token was loading.
        if _registry_client is not None:
            return _registry_client
        _registry_client = RegistryClient.create(
            settings.web_origin, auth=auth, timeout=settings.timeout_seconds
        )
    return _registry_client

async def reset_dependencies() -> None:
    global _settings, _token_store, _registry_client
    if _registry_client is not None:
        await _registry_client.aclose()
    _settings = None
    _token_store = None
    _registry_client = None
