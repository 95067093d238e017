"""
Error taxonomy for the AAD token engine

Every failure the engine considers part of its contract is an ``AzureAuthError``
carrying an ``ErrorKind``. Anything else escaping a component is unexpected.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of engine failures"""

    TENANT_NOT_FOUND = "tenant_not_found"
    MISSING_BASE_TOKEN = "missing_base_token"
    TOKEN_ENDPOINT_ERROR = "token_endpoint_error"
    MISSING_ACCESS_TOKEN = "missing_access_token"
    NO_USER_KEY = "no_user_key"
    TENANT_DISCOVERY_FAILED = "tenant_discovery_failed"
    CLAIMS_DECODE_ERROR = "claims_decode_error"
    CACHE_ADD_FAILED = "cache_add_failed"
    CACHE_GET_FAILED = "cache_get_failed"
    DEVICE_CODE_FAILED = "device_code_failed"
    AUTHORIZATION_CODE_FAILED = "authorization_code_failed"


DEFAULT_MESSAGES = {
    ErrorKind.TENANT_NOT_FOUND: "Specified tenant was not found on the account",
    ErrorKind.MISSING_BASE_TOKEN: "No base token found for the account, please re-authenticate",
    ErrorKind.TOKEN_ENDPOINT_ERROR: "The token endpoint returned an error",
    ErrorKind.MISSING_ACCESS_TOKEN: "No access token returned from the token endpoint",
    ErrorKind.NO_USER_KEY: "No unique identifier found in the token claims",
    ErrorKind.TENANT_DISCOVERY_FAILED: "Error retrieving tenant information",
    ErrorKind.CLAIMS_DECODE_ERROR: "Unable to read token claims",
    ErrorKind.CACHE_ADD_FAILED: "Error when adding your account to the cache",
    ErrorKind.CACHE_GET_FAILED: "Error when getting your account from the cache",
    ErrorKind.DEVICE_CODE_FAILED: "Device code sign-in failed",
    ErrorKind.AUTHORIZATION_CODE_FAILED: "Authorization code sign-in failed",
}


class AzureAuthError(Exception):
    """Domain error raised by the engine and its collaborators"""

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.original_error = original_error
        super().__init__(self.message)

    def printable(self) -> str:
        """Single-line description including the underlying cause, if any"""
        if self.original_error is not None:
            return f"{self.message} ({type(self.original_error).__name__}: {self.original_error})"
        return self.message

    def __repr__(self) -> str:
        return f"AzureAuthError(kind={self.kind.value!r}, message={self.message!r})"
