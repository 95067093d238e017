"""
Dependency Injection Container

Centralized dependency resolution for the token engine and its collaborators.
"""

from typing import Any, Callable, Dict, Optional
import structlog

from .config import Settings, get_settings
from .factories import LoginFlowFactory, StoreFactory
from .auth import (
    AzureAuth,
    ConsoleConsentPrompt,
    IConsentPrompt,
    IInteractiveLogin,
    InteractionCoordinator,
    TenantExclusionSet,
)
from .auth.flows.authorization_code import RedirectHandler
from .cache import ISecretStore, TokenCache
from .client import AADClient, IAADClient

logger = structlog.get_logger(__name__)


class DIContainer:
    """
    Dependency Injection Container for the token engine.

    Provides lazy initialization and caching of dependencies. Console
    collaborators (consent prompt, device code display, redirect handler) can
    be replaced by callers embedding the engine elsewhere.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        consent_prompt: Optional[IConsentPrompt] = None,
        display_message: Optional[Callable[[str], None]] = None,
        redirect_handler: Optional[RedirectHandler] = None,
    ):
        self.settings = settings or get_settings()
        self._consent_prompt = consent_prompt
        self._display_message = display_message
        self._redirect_handler = redirect_handler
        self._services: Dict[str, Any] = {}

        logger.debug("DI Container initialized",
                     auth_flow=self.settings.auth_flow,
                     secret_store=self.settings.secret_store)

    async def close(self) -> None:
        """Clean up all dependencies"""
        if 'secret_store' in self._services:
            await self._services['secret_store'].close()
        self._services.clear()
        logger.debug("DI Container closed")

    # Core Dependencies
    async def get_secret_store(self) -> ISecretStore:
        """Get secret store instance (lazy initialization)"""
        if 'secret_store' not in self._services:
            store = StoreFactory.create_secret_store(self.settings)
            await store.initialize()
            self._services['secret_store'] = store
        return self._services['secret_store']

    async def get_token_cache(self) -> TokenCache:
        if 'token_cache' not in self._services:
            self._services['token_cache'] = TokenCache(
                await self.get_secret_store(),
                StoreFactory.create_expiry_store(self.settings),
            )
        return self._services['token_cache']

    def get_client(self) -> IAADClient:
        if 'client' not in self._services:
            self._services['client'] = AADClient(timeout=self.settings.http_timeout_seconds)
        return self._services['client']

    def get_tenant_exclusions(self) -> TenantExclusionSet:
        """Get ignored-tenant set, file-backed when a path is configured"""
        if 'tenant_exclusions' not in self._services:
            path = self.settings.tenant_filter_path_resolved
            if path is not None:
                exclusions = TenantExclusionSet.from_file(path, self.settings.tenant_filter)
            else:
                exclusions = TenantExclusionSet.in_memory(self.settings.tenant_filter)
            self._services['tenant_exclusions'] = exclusions
        return self._services['tenant_exclusions']

    def get_interaction(self) -> InteractionCoordinator:
        if 'interaction' not in self._services:
            self._services['interaction'] = InteractionCoordinator(
                self.get_tenant_exclusions(),
                self._consent_prompt or ConsoleConsentPrompt(),
            )
        return self._services['interaction']

    def get_login_flow(self) -> IInteractiveLogin:
        if 'login_flow' not in self._services:
            self._services['login_flow'] = LoginFlowFactory.create(
                self.settings,
                self.get_client(),
                display_message=self._display_message,
                redirect_handler=self._redirect_handler,
            )
        return self._services['login_flow']

    async def get_engine(self) -> AzureAuth:
        """Get the token engine (lazy initialization)"""
        if 'engine' not in self._services:
            self._services['engine'] = AzureAuth(
                provider_settings=self.settings.provider_settings,
                token_cache=await self.get_token_cache(),
                client=self.get_client(),
                login_flow=self.get_login_flow(),
                interaction=self.get_interaction(),
            )
            logger.debug("Token engine created", provider_id=self.settings.aad_provider_id)
        return self._services['engine']

    def get_container_info(self) -> Dict[str, Any]:
        """Get container status and dependency information"""
        return {
            "cached_services": list(self._services.keys()),
            "settings": {
                "provider_id": self.settings.aad_provider_id,
                "auth_flow": self.settings.auth_flow,
                "secret_store": self.settings.secret_store,
                "secret_store_path": str(self.settings.secret_store_path_resolved),
            }
        }
