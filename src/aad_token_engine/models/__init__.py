"""Data model shared by the cache, client and engine"""

from .auth import (
    AADResource,
    AccessToken,
    CachedTokens,
    OAuthTokenResponse,
    ProviderSettings,
    RefreshToken,
    Tenant,
    Token,
    TokenClaims,
)
from .account import (
    AccountDisplayInfo,
    AccountKey,
    AccountProperties,
    AccountType,
    AzureAccount,
    AzureAuthType,
)

__all__ = [
    "AADResource",
    "AccessToken",
    "AccountDisplayInfo",
    "AccountKey",
    "AccountProperties",
    "AccountType",
    "AzureAccount",
    "AzureAuthType",
    "CachedTokens",
    "OAuthTokenResponse",
    "ProviderSettings",
    "RefreshToken",
    "Tenant",
    "Token",
    "TokenClaims",
]
