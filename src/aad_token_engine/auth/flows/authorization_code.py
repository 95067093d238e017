"""
Authorization code sign-in with PKCE

The user signs in through a browser; the redirect carrying the authorization
code is handed back by a caller-supplied handler and redeemed at the token
endpoint.
"""

import asyncio
import base64
import hashlib
import secrets
import webbrowser
from typing import Awaitable, Callable, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit
import structlog

from ...errors import AzureAuthError, ErrorKind
from ...models import AADResource, AzureAuthType, ProviderSettings, Tenant
from ..completion import AuthCompletion
from ..interface import IInteractiveLogin, ITokenGrantor, LoginResult

logger = structlog.get_logger(__name__)


RedirectHandler = Callable[[str], Awaitable[Optional[str]]]


def to_base64_url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def create_pkce_pair() -> Tuple[str, str]:
    """Return ``(code_verifier, code_challenge)`` for the S256 method"""
    verifier = to_base64_url(secrets.token_bytes(32))
    challenge = to_base64_url(hashlib.sha256(verifier.encode("ascii")).digest())
    return verifier, challenge


def parse_redirect(redirect_url: str, expected_state: str) -> str:
    """
    Extract the authorization code from the redirect URL.

    Raises:
        AzureAuthError: ``AUTHORIZATION_CODE_FAILED`` on an error response, a
            state mismatch or a missing code
    """
    query = parse_qs(urlsplit(redirect_url.strip()).query)

    error = query.get("error", [None])[0]
    if error:
        description = query.get("error_description", [error])[0]
        raise AzureAuthError(ErrorKind.AUTHORIZATION_CODE_FAILED, f"Sign-in failed: {description}")

    if query.get("state", [None])[0] != expected_state:
        raise AzureAuthError(ErrorKind.AUTHORIZATION_CODE_FAILED, "State mismatch in sign-in redirect")

    code = query.get("code", [None])[0]
    if not code:
        raise AzureAuthError(ErrorKind.AUTHORIZATION_CODE_FAILED, "No authorization code in sign-in redirect")
    return code


async def prompt_for_redirect(authorize_url: str) -> Optional[str]:
    """Open the browser and read the final redirect URL from stdin"""
    print(f"Opening your browser to sign in. If it does not open, visit:\n{authorize_url}")
    await asyncio.to_thread(webbrowser.open, authorize_url)
    answer = await asyncio.to_thread(input, "Paste the URL you were redirected to: ")
    return answer.strip() or None


class AuthorizationCodeLogin(IInteractiveLogin):
    """Authorization code flow against the AAD v1 endpoints"""

    def __init__(
        self,
        provider_settings: ProviderSettings,
        redirect_handler: RedirectHandler = prompt_for_redirect,
    ):
        self.provider_settings = provider_settings
        self._redirect_handler = redirect_handler

    @property
    def auth_type(self) -> AzureAuthType:
        return AzureAuthType.AUTHORIZATION_CODE

    def build_authorize_url(self, tenant: Tenant, resource: AADResource, state: str, code_challenge: str) -> str:
        params = {
            "response_type": "code",
            "response_mode": "query",
            "client_id": self.provider_settings.client_id,
            "redirect_uri": self.provider_settings.redirect_uri,
            "resource": resource.resource,
            "state": state,
            "prompt": "select_account",
            "code_challenge_method": "S256",
            "code_challenge": code_challenge,
        }
        return f"{self.provider_settings.authorize_url(tenant.id)}?{urlencode(params)}"

    async def perform_interactive_login(
        self, tenant: Tenant, resource: AADResource, grantor: ITokenGrantor
    ) -> Optional[LoginResult]:
        verifier, challenge = create_pkce_pair()
        state = secrets.token_urlsafe(16)

        logger.info("Starting authorization code sign-in", tenant_id=tenant.id, resource_id=resource.id)
        redirect_url = await self._redirect_handler(
            self.build_authorize_url(tenant, resource, state, challenge)
        )
        if not redirect_url:
            logger.info("Authorization code sign-in abandoned", tenant_id=tenant.id)
            return None

        code = parse_redirect(redirect_url, state)
        post_data = {
            "grant_type": "authorization_code",
            "client_id": self.provider_settings.client_id,
            "code": code,
            "redirect_uri": self.provider_settings.redirect_uri,
            "resource": resource.resource,
            "code_verifier": verifier,
        }
        response = await grantor.get_token(tenant, resource, post_data)
        return LoginResult(response=response, auth_complete=AuthCompletion())
