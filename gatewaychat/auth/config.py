"""
gatewaychat - Credential Configuration

Resolves the API key and base URL used by the transport, and the
local/production mode that decides whether a development credential may
be used.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional


DEFAULT_BASE_URL = "https://api.hodlai.fun/v1"

API_KEY_ENV = "GATEWAYCHAT_API_KEY"
BASE_URL_ENV = "GATEWAYCHAT_BASE_URL"
DEV_API_KEY_ENV = "GATEWAYCHAT_DEV_API_KEY"
SEARCH_URL_ENV = "GATEWAYCHAT_SEARCH_URL"


class AuthMode(str, Enum):
    """Authentication mode."""

    LOCAL = "local"  # Development: an implicit dev credential may be used
    PROD = "prod"    # Only explicitly configured keys
    TEST = "test"    # Deterministic test mode, same rules as prod


def get_auth_mode() -> AuthMode:
    """
    Get the current authentication mode.

    MODE must be one of: local, prod/production, test.

    Default: prod (fail-closed default).
    """
    mode = os.getenv("MODE", "prod").lower().strip()
    if mode in {"prod", "production"}:
        return AuthMode.PROD
    if mode == "local":
        return AuthMode.LOCAL
    if mode == "test":
        return AuthMode.TEST
    raise ValueError("Invalid MODE. Use one of: local, prod, production, test")


def is_local_mode() -> bool:
    """Check if running in local mode."""
    return get_auth_mode() == AuthMode.LOCAL


@dataclass(frozen=True)
class Credentials:
    """A resolved API key and base URL snapshot."""
    api_key: str
    base_url: str

    @property
    def has_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def key_prefix(self) -> str:
        """Non-secret key prefix for logs."""
        if not self.has_key:
            return ""
        return f"{self.api_key[:6]}..."

    def __repr__(self) -> str:
        return f"Credentials(api_key={self.key_prefix!r}, base_url={self.base_url!r})"


def _normalize_base_url(base_url: Optional[str]) -> str:
    if base_url and base_url.strip():
        return base_url.strip().rstrip("/")
    return DEFAULT_BASE_URL


class CredentialResolver:
    """
    Default credential/base-URL resolver.

    Explicit constructor values win over the environment. Every resolve()
    returns a fresh immutable snapshot, so concurrent calls can share one
    resolver without locking.

    In local mode, a missing key falls back to GATEWAYCHAT_DEV_API_KEY and
    the default base URL.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self._api_key = api_key
        self._base_url = base_url

    def resolve(self) -> Credentials:
        api_key = (self._api_key or os.getenv(API_KEY_ENV) or "").strip()
        base_url = _normalize_base_url(self._base_url or os.getenv(BASE_URL_ENV))

        if not api_key and is_local_mode():
            dev_key = (os.getenv(DEV_API_KEY_ENV) or "").strip()
            if dev_key:
                return Credentials(api_key=dev_key, base_url=DEFAULT_BASE_URL)

        return Credentials(api_key=api_key, base_url=base_url)

    def is_configured(self) -> bool:
        """Check whether a key (explicit, environment or dev) is available."""
        return self.resolve().has_key


def resolve_search_url(search_url: Optional[str] = None) -> str:
    """
    Resolve the web search endpoint.

    An explicit value wins over GATEWAYCHAT_SEARCH_URL. Empty when neither
    is set; search is then disabled.
    """
    return (search_url or os.getenv(SEARCH_URL_ENV) or "").strip()
