"""
Token Cache

Persists one token response per (account, tenant, resource). The access and
refresh tokens go to the secret store under separate keys; the expiry goes to
the volatile expiry store. The two stores are written one after the other
without a transaction.
"""

from typing import Optional
import structlog
from pydantic import ValidationError

from ..errors import AzureAuthError, ErrorKind
from ..models import (
    AADResource,
    AccessToken,
    AccountKey,
    CachedTokens,
    OAuthTokenResponse,
    RefreshToken,
    Tenant,
)
from .interface import IExpiryStore, ISecretStore

logger = structlog.get_logger(__name__)


def access_token_key(account_id: str, resource_id: str, tenant_id: str) -> str:
    return f"{account_id}_access_{resource_id}_{tenant_id}"


def refresh_token_key(account_id: str, resource_id: str, tenant_id: str) -> str:
    return f"{account_id}_refresh_{resource_id}_{tenant_id}"


def expiry_key(account_id: str, tenant_id: str, resource_id: str) -> str:
    return f"{account_id}_{tenant_id}_{resource_id}"


class TokenCache:
    """Cache of token responses keyed by account, tenant and resource"""

    def __init__(self, secret_store: ISecretStore, expiry_store: IExpiryStore):
        self.secret_store = secret_store
        self.expiry_store = expiry_store

    async def save_token(
        self,
        tenant: Tenant,
        resource: AADResource,
        account_key: AccountKey,
        response: OAuthTokenResponse,
    ) -> None:
        """
        Persist a token response.

        Raises:
            AzureAuthError: ``CACHE_ADD_FAILED`` if the tenant or resource has no
                id, or a store write fails
        """
        if not tenant.id or not resource.id:
            logger.error("Tenant ID or resource ID was missing", tenant_id=tenant.id, resource_id=resource.id)
            raise AzureAuthError(ErrorKind.CACHE_ADD_FAILED)

        account_id = account_key.account_id
        refresh_json = response.refresh_token.model_dump_json() if response.refresh_token else "null"

        try:
            await self.secret_store.save(
                access_token_key(account_id, resource.id, tenant.id),
                response.access_token.model_dump_json(),
            )
            await self.secret_store.save(
                refresh_token_key(account_id, resource.id, tenant.id),
                refresh_json,
            )
            await self.expiry_store.set(
                expiry_key(account_id, tenant.id, resource.id),
                response.expires_on or "",
            )
        except Exception as e:
            logger.error("Failed to add account to the cache", tenant_id=tenant.id, resource_id=resource.id, error=str(e))
            raise AzureAuthError(ErrorKind.CACHE_ADD_FAILED, original_error=e) from e

        logger.debug("Token cached", tenant_id=tenant.id, resource_id=resource.id)

    async def get_saved_token(
        self,
        tenant: Tenant,
        resource: AADResource,
        account_key: AccountKey,
    ) -> Optional[CachedTokens]:
        """
        Read a cache entry.

        Returns:
            Cached tokens, or None when the access token is missing or unreadable

        Raises:
            AzureAuthError: ``CACHE_GET_FAILED`` if the tenant or resource has no
                id, or a store read fails
        """
        if not tenant.id or not resource.id:
            logger.error("Tenant ID or resource ID was missing", tenant_id=tenant.id, resource_id=resource.id)
            raise AzureAuthError(ErrorKind.CACHE_GET_FAILED)

        account_id = account_key.account_id
        try:
            access_json = await self.secret_store.get(access_token_key(account_id, resource.id, tenant.id))
            refresh_json = await self.secret_store.get(refresh_token_key(account_id, resource.id, tenant.id))
            expires_on = await self.expiry_store.get(expiry_key(account_id, tenant.id, resource.id))
        except Exception as e:
            logger.error("Failed to get account from the cache", tenant_id=tenant.id, resource_id=resource.id, error=str(e))
            raise AzureAuthError(ErrorKind.CACHE_GET_FAILED, original_error=e) from e

        if not access_json:
            return None

        try:
            access_token = AccessToken.model_validate_json(access_json)
        except ValidationError as e:
            logger.warning("Discarding unparsable cached access token", tenant_id=tenant.id, resource_id=resource.id, error=str(e))
            return None

        refresh_token: Optional[RefreshToken] = None
        if refresh_json and refresh_json != "null":
            try:
                refresh_token = RefreshToken.model_validate_json(refresh_json)
            except ValidationError as e:
                logger.warning("Discarding unparsable cached refresh token", tenant_id=tenant.id, resource_id=resource.id, error=str(e))

        return CachedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_on=expires_on,
        )

    async def delete_all(self) -> int:
        """Remove every cached secret. Returns the number removed."""
        removed = 0
        for key, _ in await self.secret_store.find_all(""):
            if await self.secret_store.clear(key):
                removed += 1
        logger.info("Token cache cleared", removed=removed)
        return removed

    async def delete_account(self, account_key: AccountKey) -> int:
        """Remove every cached secret owned by an account. Returns the number removed."""
        removed = 0
        for key, account_id in await self.secret_store.find_all(account_key.account_id):
            if account_id != account_key.account_id:
                continue
            if await self.secret_store.clear(key):
                removed += 1
        logger.info("Account removed from token cache", removed=removed)
        return removed
