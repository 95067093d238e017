"""
Account models

The account object is the engine's externally visible identity. Callers store
it and hand it back for refresh and token requests.
"""

from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel

from .auth import Tenant


AccountType = Literal["microsoft", "work_school"]


class AzureAuthType(str, Enum):
    """Interactive flow an account was created with"""

    AUTHORIZATION_CODE = "authorization_code"
    DEVICE_CODE = "device_code"


class AccountKey(BaseModel):
    """Uniquely identifies a stored account"""

    provider_id: str
    account_id: str
    account_version: str


class AccountDisplayInfo(BaseModel):
    account_type: AccountType
    user_id: str
    display_name: Optional[str] = None
    contextual_display_name: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class AccountProperties(BaseModel):
    provider_id: str
    tenants: List[Tenant] = []
    is_ms_account: bool = False
    azure_auth_type: AzureAuthType


class AzureAccount(BaseModel):
    """
    A signed-in identity and the tenants it can reach.

    ``is_stale`` marks an account whose credentials could not be refreshed;
    ``delete`` marks an account written by an incompatible engine version.
    """

    key: AccountKey
    name: Optional[str] = None
    display_info: AccountDisplayInfo
    properties: AccountProperties
    is_stale: bool = False
    delete: bool = False
