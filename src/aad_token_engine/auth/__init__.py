"""
Authentication module

Token acquisition, caching and refresh against Azure Active Directory.
"""

from .azure_auth import ACCOUNT_VERSION, COMMON_TENANT, AzureAuth
from .claims import decode_token_claims
from .completion import AuthCompletion
from .interaction import ConsoleConsentPrompt, InteractionCoordinator, TenantExclusionSet
from .interface import (
    ConsentChoice,
    IConsentPrompt,
    IInteractiveLogin,
    ITokenGrantor,
    LoginResult,
)

__all__ = [
    "ACCOUNT_VERSION",
    "COMMON_TENANT",
    "AuthCompletion",
    "AzureAuth",
    "ConsentChoice",
    "ConsoleConsentPrompt",
    "IConsentPrompt",
    "IInteractiveLogin",
    "ITokenGrantor",
    "InteractionCoordinator",
    "LoginResult",
    "TenantExclusionSet",
    "decode_token_claims",
]
