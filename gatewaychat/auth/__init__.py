"""
gatewaychat - Auth Module

Credential and base URL resolution.
"""

from .config import (
    AuthMode,
    Credentials,
    CredentialResolver,
    DEFAULT_BASE_URL,
    get_auth_mode,
    is_local_mode,
    resolve_search_url,
)

__all__ = [
    "AuthMode",
    "Credentials",
    "CredentialResolver",
    "DEFAULT_BASE_URL",
    "get_auth_mode",
    "is_local_mode",
    "resolve_search_url",
]
