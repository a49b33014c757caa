"""Client package for the App Store Connect CLI."""

from .asc_client import AppStoreConnectClient
from .auth import TokenSigner, TokenProvider, CachedToken
from .errors import (
    AppStoreConnectError,
    ConfigError,
    KeyLoadError,
    AuthenticationError,
    SigningError,
    TransportError,
    APIError,
)

__all__ = [
    "AppStoreConnectClient",
    "TokenSigner",
    "TokenProvider",
    "CachedToken",
    "AppStoreConnectError",
    "ConfigError",
    "KeyLoadError",
    "AuthenticationError",
    "SigningError",
    "TransportError",
    "APIError",
]
