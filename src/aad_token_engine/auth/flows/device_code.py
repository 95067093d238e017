"""
Device code sign-in

The user completes sign-in on another device by entering a short code; the
engine polls the token endpoint until the code is redeemed.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional
import structlog

from ...client import IAADClient
from ...errors import AzureAuthError, ErrorKind
from ...models import AADResource, AzureAuthType, ProviderSettings, Tenant
from ..completion import AuthCompletion
from ..interface import IInteractiveLogin, ITokenGrantor, LoginResult

logger = structlog.get_logger(__name__)


DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
DEFAULT_POLL_INTERVAL = 5
DEFAULT_EXPIRES_IN = 900
SLOW_DOWN_INCREMENT = 5


def _log_message(message: str) -> None:
    logger.info("Device code sign-in", message=message)


class DeviceCodeLogin(IInteractiveLogin):
    """Device code flow against the AAD v1 endpoints"""

    def __init__(
        self,
        provider_settings: ProviderSettings,
        client: IAADClient,
        display_message: Callable[[str], None] = _log_message,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider_settings = provider_settings
        self.client = client
        self._display_message = display_message
        self._sleep = sleep
        self._clock = clock

    @property
    def auth_type(self) -> AzureAuthType:
        return AzureAuthType.DEVICE_CODE

    async def perform_interactive_login(
        self, tenant: Tenant, resource: AADResource, grantor: ITokenGrantor
    ) -> Optional[LoginResult]:
        start = await self.client.post_form(
            self.provider_settings.device_code_url(tenant.id),
            {"client_id": self.provider_settings.client_id, "resource": resource.resource},
        )
        if start.get("error") or not start.get("device_code"):
            logger.error("Device code request failed",
                         error=start.get("error"),
                         error_description=start.get("error_description"))
            raise AzureAuthError(
                ErrorKind.DEVICE_CODE_FAILED,
                start.get("error_description") or "Device code initiation failed",
            )

        self._display_message(
            start.get("message")
            or f"To sign in, open {start.get('verification_url')} and enter the code {start.get('user_code')}"
        )

        interval = float(start.get("interval") or DEFAULT_POLL_INTERVAL)
        deadline = self._clock() + float(start.get("expires_in") or DEFAULT_EXPIRES_IN)
        post_data = {
            "grant_type": DEVICE_CODE_GRANT,
            "client_id": self.provider_settings.client_id,
            "tenant": tenant.id,
            "resource": resource.resource,
            "code": start["device_code"],
        }
        token_url = self.provider_settings.token_url(tenant.id)

        while self._clock() < deadline:
            await self._sleep(interval)
            body = await self.client.post_form(token_url, post_data)
            error = body.get("error")

            if not error:
                expires_on = body.get("expires_on")
                response = await grantor.finalize_token(
                    tenant,
                    resource,
                    body.get("access_token"),
                    body.get("refresh_token"),
                    str(expires_on) if expires_on is not None else None,
                )
                logger.info("Device code sign-in succeeded", tenant_id=tenant.id)
                return LoginResult(response=response, auth_complete=AuthCompletion())

            if error == "authorization_pending":
                continue
            if error == "slow_down":
                interval += SLOW_DOWN_INCREMENT
                continue

            logger.error("Device code sign-in failed",
                         error=error, error_description=body.get("error_description"))
            raise AzureAuthError(
                ErrorKind.DEVICE_CODE_FAILED,
                body.get("error_description") or f"Device code sign-in failed: {error}",
            )

        raise AzureAuthError(ErrorKind.DEVICE_CODE_FAILED, "Device code expired before sign-in completed")
