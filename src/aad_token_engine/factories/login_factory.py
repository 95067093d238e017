"""
Login Flow Factory

Creates the interactive sign-in flow based on configuration.
"""

from typing import Callable, List, Optional
import structlog

from ..config import Settings
from ..auth import IInteractiveLogin
from ..auth.flows import AuthorizationCodeLogin, DeviceCodeLogin
from ..auth.flows.authorization_code import RedirectHandler
from ..client import IAADClient

logger = structlog.get_logger(__name__)


class LoginFlowFactory:
    """Factory for creating interactive sign-in flows"""

    @staticmethod
    def create(
        settings: Settings,
        client: IAADClient,
        display_message: Optional[Callable[[str], None]] = None,
        redirect_handler: Optional[RedirectHandler] = None,
    ) -> IInteractiveLogin:
        """
        Create sign-in flow based on configuration.

        Args:
            settings: Application settings
            client: AAD client used by flows that poll the token endpoint
            display_message: Sink for device code instructions
            redirect_handler: Returns the redirect URL for authorization code sign-in

        Returns:
            Configured sign-in flow

        Raises:
            ValueError: If the flow is not supported
        """
        flow = settings.auth_flow.lower()

        logger.info("Creating sign-in flow", flow=flow)

        if flow == "device_code":
            if display_message is not None:
                return DeviceCodeLogin(settings.provider_settings, client, display_message=display_message)
            return DeviceCodeLogin(settings.provider_settings, client)
        elif flow == "authorization_code":
            if redirect_handler is not None:
                return AuthorizationCodeLogin(settings.provider_settings, redirect_handler)
            return AuthorizationCodeLogin(settings.provider_settings)
        else:
            raise ValueError(f"Unsupported sign-in flow: {flow}")

    @staticmethod
    def get_available_flows() -> List[str]:
        """Get list of available sign-in flows"""
        return ["device_code", "authorization_code"]
