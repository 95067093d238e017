"""
Token and resource models

Shapes of the OAuth2 artefacts exchanged with the AAD v1 token endpoint and
persisted in the token cache.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class AADResource(BaseModel):
    """An AAD-protected API audience"""

    id: str
    resource: str
    endpoint: Optional[str] = None


class Tenant(BaseModel):
    """An AAD directory"""

    id: str
    display_name: str
    user_id: Optional[str] = None
    tenant_category: Optional[str] = None


class ProviderSettings(BaseModel):
    """Cloud-specific endpoints and the client registration used for every grant"""

    id: str
    client_id: str
    login_endpoint: str
    redirect_uri: str
    windows_management_resource: AADResource
    azure_management_resource: AADResource

    def token_url(self, tenant_id: str) -> str:
        return f"{self.login_endpoint}{tenant_id}/oauth2/token"

    def device_code_url(self, tenant_id: str) -> str:
        return f"{self.login_endpoint}{tenant_id}/oauth2/devicecode"

    def authorize_url(self, tenant_id: str) -> str:
        return f"{self.login_endpoint}{tenant_id}/oauth2/authorize"


class TokenClaims(BaseModel):
    """
    Decoded JWT payload of an access token.

    Only the claims the engine reads are declared; anything else the issuer
    adds is kept as an extra field.
    """

    model_config = ConfigDict(extra="allow")

    aud: Optional[str] = None
    iss: Optional[str] = None
    iat: Optional[int] = None
    nbf: Optional[int] = None
    exp: Optional[int] = None
    idp: Optional[str] = None
    tid: Optional[str] = None
    ver: Optional[str] = None
    home_oid: Optional[str] = None
    oid: Optional[str] = None
    unique_name: Optional[str] = None
    sub: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    preferred_username: Optional[str] = None
    roles: List[str] = []


class AccessToken(BaseModel):
    """Access token tagged with the stable per-user key"""

    key: str
    token: str


class RefreshToken(BaseModel):
    """Refresh token tagged with the stable per-user key"""

    key: str
    token: str


class Token(AccessToken):
    """Access token as handed to callers"""

    token_type: str = "Bearer"


class OAuthTokenResponse(BaseModel):
    """Result of a successful grant, persisted per (account, tenant, resource)"""

    access_token: AccessToken
    refresh_token: Optional[RefreshToken] = None
    token_claims: TokenClaims
    expires_on: Optional[str] = None


class CachedTokens(BaseModel):
    """Cache entry read back from the secret and expiry stores"""

    access_token: AccessToken
    refresh_token: Optional[RefreshToken] = None
    expires_on: Optional[str] = None
