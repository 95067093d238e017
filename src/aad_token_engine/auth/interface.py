"""
Authentication Interfaces

Contracts between the engine, the interactive sign-in flows and the consent prompt.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..models import AADResource, AzureAuthType, OAuthTokenResponse, Tenant
from .completion import AuthCompletion


class ConsentChoice(str, Enum):
    """Answers to the re-authentication prompt"""

    OPEN = "open"
    CANCEL = "cancel"
    IGNORE_TENANT = "ignore_tenant"


@dataclass
class LoginResult:
    """Outcome of an interactive sign-in"""

    response: Optional[OAuthTokenResponse]
    auth_complete: Optional[AuthCompletion] = None


class ITokenGrantor(ABC):
    """Token endpoint operations the engine exposes to sign-in flows"""

    @abstractmethod
    async def get_token(
        self, tenant: Tenant, resource: AADResource, post_data: Dict[str, Any]
    ) -> Optional[OAuthTokenResponse]:
        """
        Redeem a grant at the token endpoint and cache the result.

        Returns:
            Token response, or None if the result could not be finalized or the
            user declined re-authentication
        """
        pass

    @abstractmethod
    async def finalize_token(
        self,
        tenant: Tenant,
        resource: AADResource,
        access_token: Optional[str],
        refresh_token: Optional[str],
        expires_on: Optional[str],
    ) -> Optional[OAuthTokenResponse]:
        """Turn raw token strings into a cached token response"""
        pass


class IInteractiveLogin(ABC):
    """Interface for interactive sign-in flows"""

    @property
    @abstractmethod
    def auth_type(self) -> AzureAuthType:
        """Flow identifier recorded on accounts created through this flow"""
        pass

    @abstractmethod
    async def perform_interactive_login(
        self, tenant: Tenant, resource: AADResource, grantor: ITokenGrantor
    ) -> Optional[LoginResult]:
        """
        Run a full interactive sign-in for ``tenant`` and ``resource``.

        Args:
            tenant: Tenant to authenticate against
            resource: Resource the first access token is scoped to
            grantor: Token operations used to redeem the grant and cache the result

        Returns:
            Login result, or None if the user abandoned the flow

        Raises:
            AzureAuthError: If the flow fails
        """
        pass


class IConsentPrompt(ABC):
    """Interface for asking the user whether to re-authenticate"""

    @abstractmethod
    async def ask(self, tenant: Tenant, resource: AADResource) -> ConsentChoice:
        """Ask whether to start interactive sign-in for a tenant"""
        pass
