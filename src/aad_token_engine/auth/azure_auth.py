"""
Azure Auth Engine

Token acquisition, caching and refresh for AAD accounts spanning several
tenants and resources.

Tokens are looked up in the cache first. An access token within two minutes
of expiry is refreshed with its own refresh token. When nothing is cached for
a (tenant, resource) pair, the refresh token obtained at sign-in for the
management resource on the common tenant is redeemed for the requested pair:
AAD refresh tokens are not bound to a single resource.
"""

import math
import time
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urljoin
import structlog

from ..cache import TokenCache
from ..client import IAADClient
from ..errors import AzureAuthError, ErrorKind
from ..models import (
    AADResource,
    AccessToken,
    AccountDisplayInfo,
    AccountKey,
    AccountProperties,
    AzureAccount,
    OAuthTokenResponse,
    ProviderSettings,
    RefreshToken,
    Tenant,
    Token,
    TokenClaims,
)
from .claims import decode_token_claims
from .interaction import InteractionCoordinator
from .interface import IInteractiveLogin, ITokenGrantor, LoginResult

logger = structlog.get_logger(__name__)


ACCOUNT_VERSION = "2.0"
COMMON_TENANT = Tenant(id="common", display_name="common")
HOME_TENANT_CATEGORY = "Home"
EXPIRY_TOLERANCE_SECONDS = 2 * 60
TENANTS_API_VERSION = "2019-11-01"

CORP_ISSUER = "https://sts.windows.net/72f988bf-86f1-41af-91ab-2d7cd011db47/"
MSA_IDENTITY_PROVIDER = "live.com"


class AzureAuth(ITokenGrantor):
    """Orchestrates sign-in, refresh, account hydration and the token cache"""

    def __init__(
        self,
        provider_settings: ProviderSettings,
        token_cache: TokenCache,
        client: IAADClient,
        login_flow: IInteractiveLogin,
        interaction: InteractionCoordinator,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider_settings = provider_settings
        self.token_cache = token_cache
        self.client = client
        self.login_flow = login_flow
        self.interaction = interaction
        self._clock = clock

    @property
    def bootstrap_resource(self) -> AADResource:
        return self.provider_settings.windows_management_resource

    async def _login(self, tenant: Tenant, resource: AADResource) -> Optional[LoginResult]:
        return await self.login_flow.perform_interactive_login(tenant, resource, self)

    # Accounts ---------------------------------------------------------------

    async def start_login(self) -> Optional[AzureAccount]:
        """
        Interactive sign-in against the common tenant for the management resource.

        Returns:
            The new account, or None if sign-in produced no token or failed
            unexpectedly

        Raises:
            AzureAuthError: Domain failures are re-raised after the completion
                signal has been rejected
        """
        login_complete = None
        try:
            result = await self._login(COMMON_TENANT, self.bootstrap_resource)
            login_complete = result.auth_complete if result else None
            if result is None or result.response is None:
                logger.error("Authentication failed")
                if login_complete is not None:
                    login_complete.resolve(None)
                return None

            account = await self.hydrate_account(
                result.response.access_token, result.response.token_claims
            )
            if login_complete is not None:
                login_complete.resolve(account)
            logger.info("Sign-in complete", tenant_count=len(account.properties.tenants))
            return account
        except AzureAuthError as e:
            if login_complete is not None:
                login_complete.reject(e)
            raise
        except Exception as e:
            # Unexpected failures end the sign-in without an account
            logger.error("Sign-in failed unexpectedly", error=str(e), exc_info=True)
            if login_complete is not None:
                login_complete.reject(e)
            return None

    def get_home_tenant(self, account: AzureAccount) -> Tenant:
        """Home tenant, else the first known tenant, else the common tenant"""
        tenants = account.properties.tenants
        for tenant in tenants:
            if tenant.tenant_category == HOME_TENANT_CATEGORY:
                return tenant
        return tenants[0] if tenants else COMMON_TENANT

    async def refresh_access(self, account: AzureAccount) -> AzureAccount:
        """
        Refresh an account from its cached credentials.

        Accounts from another engine version are flagged for deletion without
        any network call. Every other failure leaves the account marked stale
        instead of raising.
        """
        if account.key.account_version != ACCOUNT_VERSION:
            logger.info("Account version mismatch, flagging for deletion",
                        account_version=account.key.account_version)
            account.delete = True
            return account

        try:
            tenant = self.get_home_tenant(account)
            token = await self.get_account_security_token(account, tenant.id, self.bootstrap_resource)
            if token is None:
                account.is_stale = True
                return account

            try:
                claims = decode_token_claims(token.token)
            except AzureAuthError as e:
                logger.warning("Refreshed token claims unreadable", error=e.printable())
                account.is_stale = True
                return account

            return await self.hydrate_account(token, claims)
        except Exception as e:
            # Background refresh favours availability: report stale, never raise
            logger.warning("Account refresh failed", error=str(e))
            account.is_stale = True
            return account

    async def hydrate_account(
        self, token: Union[Token, AccessToken], token_claims: TokenClaims
    ) -> AzureAccount:
        tenants = await self.get_tenants(token)
        return self.create_account(token_claims, token.key, tenants)

    def create_account(
        self, token_claims: TokenClaims, key: str, tenants: List[Tenant]
    ) -> AzureAccount:
        account_issuer = "unknown"
        if token_claims.iss == CORP_ISSUER:
            account_issuer = "corp"
        if token_claims.idp == MSA_IDENTITY_PROVIDER:
            account_issuer = "msft"

        name = _first_present(token_claims.name, token_claims.email, token_claims.unique_name)
        email = _first_present(token_claims.email, token_claims.unique_name)

        display_name = name
        if email:
            display_name = f"{display_name} - {email}"

        if account_issuer == "corp":
            contextual_display_name = "Microsoft Corp"
        elif account_issuer == "msft":
            contextual_display_name = "Microsoft Account"
        else:
            contextual_display_name = display_name

        return AzureAccount(
            key=AccountKey(
                provider_id=self.provider_settings.id,
                account_id=key,
                account_version=ACCOUNT_VERSION,
            ),
            name=display_name,
            display_info=AccountDisplayInfo(
                account_type="microsoft" if account_issuer == "msft" else "work_school",
                user_id=key,
                display_name=display_name,
                contextual_display_name=contextual_display_name,
                email=email,
                name=name,
            ),
            properties=AccountProperties(
                provider_id=self.provider_settings.id,
                tenants=tenants,
                is_ms_account=account_issuer == "msft",
                azure_auth_type=self.login_flow.auth_type,
            ),
            is_stale=False,
        )

    # Tokens -----------------------------------------------------------------

    async def get_account_security_token(
        self, account: AzureAccount, tenant_id: str, resource: AADResource
    ) -> Optional[Token]:
        """
        Get a bearer token for ``resource`` in ``tenant_id``.

        Returns:
            Token, or None when re-authentication is needed

        Raises:
            AzureAuthError: ``TENANT_NOT_FOUND`` for a tenant the account does not
                know; ``MISSING_BASE_TOKEN`` when the sign-in refresh token is gone
                (the account is marked stale)
        """
        if account.is_stale:
            logger.info("Account was stale, no tokens being fetched")
            return None

        tenant = next((t for t in account.properties.tenants if t.id == tenant_id), None)
        if tenant is None:
            raise AzureAuthError(
                ErrorKind.TENANT_NOT_FOUND,
                f"Specified tenant with ID '{tenant_id}' not found",
            )

        cached = await self.token_cache.get_saved_token(tenant, resource, account.key)

        if cached is not None and cached.access_token:
            remaining = _parse_expiry(cached.expires_on) - self._clock()
            if remaining >= EXPIRY_TOLERANCE_SECONDS:
                return Token(**cached.access_token.model_dump(), token_type="Bearer")

            logger.debug("Cached token near expiry, refreshing",
                         tenant_id=tenant.id, resource_id=resource.id)
            result = await self.refresh_token(tenant, resource, cached.refresh_token)
            if result is None:
                return None
            return Token(**result.access_token.model_dump(), token_type="Bearer")

        base_tokens = await self.token_cache.get_saved_token(
            COMMON_TENANT, self.bootstrap_resource, account.key
        )
        if base_tokens is None:
            logger.error("Account has no base tokens; the sign-in cycle did not complete")
            account.is_stale = True
            raise AzureAuthError(ErrorKind.MISSING_BASE_TOKEN)

        # Redeem the sign-in refresh token for the requested tenant and resource
        result = await self.refresh_token(tenant, resource, base_tokens.refresh_token)
        if result is not None and result.access_token:
            return Token(**result.access_token.model_dump(), token_type="Bearer")
        return None

    async def refresh_token(
        self,
        tenant: Tenant,
        resource: AADResource,
        refresh_token: Optional[RefreshToken],
    ) -> Optional[OAuthTokenResponse]:
        """Redeem ``refresh_token``, or ask the user to sign in when there is none"""
        if refresh_token is not None:
            post_data = {
                "grant_type": "refresh_token",
                "client_id": self.provider_settings.client_id,
                "refresh_token": refresh_token.token,
                "tenant": tenant.id,
                "resource": resource.resource,
            }
            return await self.get_token(tenant, resource, post_data)

        return await self.interaction.handle_interaction_required(tenant, resource, self._login)

    async def get_token(
        self, tenant: Tenant, resource: AADResource, post_data: Dict[str, Any]
    ) -> Optional[OAuthTokenResponse]:
        body = await self.client.post_form(self.provider_settings.token_url(tenant.id), post_data)

        error = body.get("error")
        if error == "interaction_required":
            logger.info("Interaction required", tenant_id=tenant.id, resource_id=resource.id)
            return await self.interaction.handle_interaction_required(tenant, resource, self._login)

        if error:
            logger.error(
                "Token endpoint returned an error",
                error=error,
                error_description=body.get("error_description"),
                error_codes=body.get("error_codes"),
                tenant_id=tenant.id,
                resource_id=resource.id,
            )
            raise AzureAuthError(
                ErrorKind.TOKEN_ENDPOINT_ERROR,
                f"The token endpoint returned an error: {error}",
            )

        expires_on = body.get("expires_on")
        return await self.finalize_token(
            tenant,
            resource,
            body.get("access_token"),
            body.get("refresh_token"),
            str(expires_on) if expires_on is not None else None,
        )

    async def finalize_token(
        self,
        tenant: Tenant,
        resource: AADResource,
        access_token: Optional[str],
        refresh_token: Optional[str],
        expires_on: Optional[str],
    ) -> Optional[OAuthTokenResponse]:
        if not access_token:
            raise AzureAuthError(ErrorKind.MISSING_ACCESS_TOKEN)

        try:
            claims = decode_token_claims(access_token)
        except AzureAuthError as e:
            logger.warning("Could not read claims of issued token", error=e.printable())
            return None

        user_key = _first_present(claims.home_oid, claims.oid, claims.unique_name, claims.sub)
        if not user_key:
            raise AzureAuthError(ErrorKind.NO_USER_KEY)

        result = OAuthTokenResponse(
            access_token=AccessToken(key=user_key, token=access_token),
            refresh_token=RefreshToken(key=user_key, token=refresh_token) if refresh_token else None,
            token_claims=claims,
            expires_on=expires_on,
        )

        account_key = AccountKey(
            provider_id=self.provider_settings.id,
            account_id=user_key,
            account_version=ACCOUNT_VERSION,
        )
        await self.token_cache.save_token(tenant, resource, account_key, result)
        return result

    # Tenants ----------------------------------------------------------------

    async def get_tenants(self, token: Union[Token, AccessToken]) -> List[Tenant]:
        """
        List the tenants the token's user belongs to, home tenant first.

        Raises:
            AzureAuthError: ``TENANT_DISCOVERY_FAILED`` wrapping any failure
        """
        tenant_url = urljoin(
            self.provider_settings.azure_management_resource.resource,
            f"tenants?api-version={TENANTS_API_VERSION}",
        )
        try:
            body = await self.client.get_json(tenant_url, token.token)
            tenants = [
                Tenant(
                    id=item["tenantId"],
                    display_name=item.get("displayName") or item["tenantId"],
                    user_id=token.key,
                    tenant_category=item.get("tenantCategory"),
                )
                for item in body["value"]
            ]
        except Exception as e:
            raise AzureAuthError(ErrorKind.TENANT_DISCOVERY_FAILED, original_error=e) from e

        home_index = next(
            (i for i, t in enumerate(tenants) if t.tenant_category == HOME_TENANT_CATEGORY),
            None,
        )
        if home_index is not None:
            tenants.insert(0, tenants.pop(home_index))

        logger.debug("Tenants discovered", count=len(tenants))
        return tenants

    # Cache management -------------------------------------------------------

    async def delete_all_cache(self) -> None:
        await self.token_cache.delete_all()

    async def delete_account_cache(self, account_key: AccountKey) -> None:
        await self.token_cache.delete_account(account_key)

    async def clear_credentials(self, account_key: AccountKey) -> None:
        """Remove an account's tokens, logging instead of raising on failure"""
        try:
            await self.delete_account_cache(account_key)
        except Exception as e:
            logger.error("Error when removing tokens", error=str(e))


def _first_present(*values: Optional[str]) -> Optional[str]:
    return next((value for value in values if value is not None), None)


def _parse_expiry(expires_on: Optional[str]) -> float:
    """Expiry as epoch seconds; unknown or malformed expiry reads as 0"""
    try:
        expiry = float(expires_on)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.debug("Expiration time was not defined, forcing refresh")
        return 0.0
    if math.isnan(expiry):
        return 0.0
    return expiry
