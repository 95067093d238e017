"""
Pytest configuration and fixtures for AAD token engine tests
"""

import base64
import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from aad_token_engine.auth import (
    ConsentChoice,
    InteractionCoordinator,
    LoginResult,
    TenantExclusionSet,
)
from aad_token_engine.auth.azure_auth import ACCOUNT_VERSION, AzureAuth
from aad_token_engine.cache import InMemoryExpiryStore, InMemorySecretStore, TokenCache
from aad_token_engine.client import IAADClient
from aad_token_engine.config import Settings
from aad_token_engine.main import configure_logging
from aad_token_engine.models import AzureAuthType


NOW = 1_700_000_000.0

# Keep log output on stderr so command output on stdout stays parseable
configure_logging("debug")


def encode_jwt(claims: Dict[str, Any]) -> str:
    """Unsigned compact JWT carrying ``claims``"""
    def segment(data: Dict[str, Any]) -> str:
        raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{segment({'alg': 'none', 'typ': 'JWT'})}.{segment(claims)}.signature"


class FakeAADClient(IAADClient):
    """Scripted AAD client recording every request"""

    def __init__(self) -> None:
        self.post_responses: List[Dict[str, Any]] = []
        self.tenants_body: Dict[str, Any] = {"value": []}
        self.tenants_error: Optional[Exception] = None
        self.posts: List[Tuple[str, Dict[str, Any]]] = []
        self.gets: List[Tuple[str, str]] = []

    async def post_form(self, url: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.posts.append((url, dict(data)))
        if not self.post_responses:
            raise AssertionError(f"Unexpected POST to {url}")
        return self.post_responses.pop(0)

    async def get_json(self, url: str, bearer_token: str) -> Dict[str, Any]:
        self.gets.append((url, bearer_token))
        if self.tenants_error is not None:
            raise self.tenants_error
        return self.tenants_body


@pytest.fixture
def mock_settings():
    """Settings for testing"""
    return Settings(
        aad_client_id="test-client-id",
        aad_provider_id="test-provider",
        secret_store="memory",
        tenant_filter=[],
        tenant_filter_path=None,
    )


@pytest.fixture
def provider_settings(mock_settings):
    return mock_settings.provider_settings


@pytest.fixture
def jwt_factory() -> Callable[..., str]:
    """Build access tokens from claims"""
    def factory(**claims: Any) -> str:
        return encode_jwt(claims)
    return factory


@pytest.fixture
def secret_store():
    return InMemorySecretStore()


@pytest.fixture
def token_cache(secret_store):
    return TokenCache(secret_store, InMemoryExpiryStore())


@pytest.fixture
def fake_client():
    return FakeAADClient()


@pytest.fixture
def consent_prompt():
    """Consent prompt that agrees to sign in"""
    prompt = AsyncMock()
    prompt.ask.return_value = ConsentChoice.OPEN
    return prompt


@pytest.fixture
def exclusions():
    return TenantExclusionSet.in_memory()


@pytest.fixture
def interaction(exclusions, consent_prompt):
    return InteractionCoordinator(exclusions, consent_prompt)


@pytest.fixture
def login_flow():
    """Interactive sign-in that produces nothing unless a test scripts it"""
    flow = AsyncMock()
    flow.auth_type = AzureAuthType.DEVICE_CODE
    flow.perform_interactive_login.return_value = LoginResult(response=None)
    return flow


@pytest.fixture
def engine(provider_settings, token_cache, fake_client, login_flow, interaction):
    return AzureAuth(
        provider_settings=provider_settings,
        token_cache=token_cache,
        client=fake_client,
        login_flow=login_flow,
        interaction=interaction,
        clock=lambda: NOW,
    )


@pytest.fixture
def user_claims():
    """Claims of a typical work account"""
    return {
        "aud": "https://management.core.windows.net/",
        "iss": "https://sts.windows.net/home-tenant/",
        "oid": "user-oid",
        "sub": "user-sub",
        "unique_name": "ada@contoso.com",
        "name": "Ada Lovelace",
        "tid": "home-tenant",
        "exp": int(NOW) + 3600,
    }


@pytest.fixture
def tenants_body():
    """Tenant listing with the home tenant in the middle"""
    return {
        "value": [
            {"tenantId": "A", "displayName": "Tenant A"},
            {"tenantId": "B", "displayName": "Tenant B", "tenantCategory": "Home"},
            {"tenantId": "C"},
        ]
    }


@pytest.fixture
def account_version():
    return ACCOUNT_VERSION
