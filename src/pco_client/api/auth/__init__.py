"""Authentication for the PCO API."""

from .credentials import (
    Credential,
    OAuthCredential,
    StaticTokenCredential,
    credential_from_config,
)
from .refresh import OAuthTokenRefresher, TokenPair, TokenRefresher

__all__ = [
    "Credential",
    "OAuthCredential",
    "OAuthTokenRefresher",
    "StaticTokenCredential",
    "TokenPair",
    "TokenRefresher",
    "credential_from_config",
]
