"""
Tests for the TokenCache
"""

from unittest.mock import AsyncMock

import pytest

from aad_token_engine.cache import InMemoryExpiryStore, InMemorySecretStore, TokenCache
from aad_token_engine.errors import AzureAuthError, ErrorKind
from aad_token_engine.models import (
    AADResource,
    AccessToken,
    AccountKey,
    OAuthTokenResponse,
    RefreshToken,
    Tenant,
    TokenClaims,
)


TENANT = Tenant(id="tenant-1", display_name="Tenant One")
RESOURCE = AADResource(id="arm", resource="https://management.azure.com/")
KEY = AccountKey(provider_id="p", account_id="user-1", account_version="2.0")


def make_response(refresh: bool = True, expires_on: str = "1700003600") -> OAuthTokenResponse:
    return OAuthTokenResponse(
        access_token=AccessToken(key="user-1", token="access-value"),
        refresh_token=RefreshToken(key="user-1", token="refresh-value") if refresh else None,
        token_claims=TokenClaims(oid="user-1"),
        expires_on=expires_on,
    )


@pytest.mark.unit
class TestTokenCache:
    async def test_save_uses_composite_keys(self, token_cache, secret_store):
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())

        assert await secret_store.get("user-1_access_arm_tenant-1") is not None
        assert await secret_store.get("user-1_refresh_arm_tenant-1") is not None
        assert await token_cache.expiry_store.get("user-1_tenant-1_arm") == "1700003600"

    async def test_round_trip(self, token_cache):
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())

        cached = await token_cache.get_saved_token(TENANT, RESOURCE, KEY)

        assert cached.access_token.token == "access-value"
        assert cached.refresh_token.token == "refresh-value"
        assert cached.expires_on == "1700003600"

    async def test_missing_refresh_token_reads_back_as_none(self, token_cache):
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response(refresh=False))

        cached = await token_cache.get_saved_token(TENANT, RESOURCE, KEY)

        assert cached.access_token.token == "access-value"
        assert cached.refresh_token is None

    async def test_missing_entry_is_none(self, token_cache):
        assert await token_cache.get_saved_token(TENANT, RESOURCE, KEY) is None

    async def test_unparsable_access_token_is_treated_as_absent(self, token_cache, secret_store):
        await secret_store.save("user-1_access_arm_tenant-1", "{not json")

        assert await token_cache.get_saved_token(TENANT, RESOURCE, KEY) is None

    async def test_unparsable_refresh_token_is_dropped(self, token_cache, secret_store):
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())
        await secret_store.save("user-1_refresh_arm_tenant-1", "garbage")

        cached = await token_cache.get_saved_token(TENANT, RESOURCE, KEY)

        assert cached.access_token.token == "access-value"
        assert cached.refresh_token is None

    async def test_entries_are_isolated_by_tenant_and_resource(self, token_cache):
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())

        other_tenant = Tenant(id="tenant-2", display_name="Two")
        other_resource = AADResource(id="marm", resource="https://management.core.windows.net/")

        assert await token_cache.get_saved_token(other_tenant, RESOURCE, KEY) is None
        assert await token_cache.get_saved_token(TENANT, other_resource, KEY) is None

    async def test_save_overwrites_previous_entry(self, token_cache):
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())
        newer = make_response(expires_on="1800000000")
        newer.access_token.token = "newer-access"

        await token_cache.save_token(TENANT, RESOURCE, KEY, newer)
        cached = await token_cache.get_saved_token(TENANT, RESOURCE, KEY)

        assert cached.access_token.token == "newer-access"
        assert cached.expires_on == "1800000000"

    async def test_save_without_resource_id_fails(self, token_cache):
        with pytest.raises(AzureAuthError) as exc_info:
            await token_cache.save_token(TENANT, AADResource(id="", resource="x"), KEY, make_response())

        assert exc_info.value.kind == ErrorKind.CACHE_ADD_FAILED

    async def test_store_write_failure_is_wrapped(self):
        store = AsyncMock()
        store.save.side_effect = RuntimeError("keychain locked")
        cache = TokenCache(store, InMemoryExpiryStore())

        with pytest.raises(AzureAuthError) as exc_info:
            await cache.save_token(TENANT, RESOURCE, KEY, make_response())

        assert exc_info.value.kind == ErrorKind.CACHE_ADD_FAILED
        assert isinstance(exc_info.value.original_error, RuntimeError)

    async def test_store_read_failure_is_wrapped(self):
        store = AsyncMock()
        store.get.side_effect = RuntimeError("keychain locked")
        cache = TokenCache(store, InMemoryExpiryStore())

        with pytest.raises(AzureAuthError) as exc_info:
            await cache.get_saved_token(TENANT, RESOURCE, KEY)

        assert exc_info.value.kind == ErrorKind.CACHE_GET_FAILED

    async def test_delete_account_only_removes_that_account(self, token_cache, secret_store):
        other = AccountKey(provider_id="p", account_id="user-10", account_version="2.0")
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())
        await token_cache.save_token(TENANT, RESOURCE, other, make_response())

        removed = await token_cache.delete_account(KEY)

        assert removed == 2
        assert await token_cache.get_saved_token(TENANT, RESOURCE, KEY) is None
        assert await token_cache.get_saved_token(TENANT, RESOURCE, other) is not None

    async def test_delete_all(self, token_cache, secret_store):
        other = AccountKey(provider_id="p", account_id="user-2", account_version="2.0")
        await token_cache.save_token(TENANT, RESOURCE, KEY, make_response())
        await token_cache.save_token(TENANT, RESOURCE, other, make_response())

        removed = await token_cache.delete_all()

        assert removed == 4
        assert await secret_store.find_all("") == []


@pytest.mark.unit
class TestInMemorySecretStore:
    async def test_find_all_reports_owning_account(self):
        store = InMemorySecretStore()
        await store.save("jane_doe@contoso.com_access_arm_t1", "{}")
        await store.save("other_refresh_arm_t1", "{}")

        found = await store.find_all("jane")

        assert found == [("jane_doe@contoso.com_access_arm_t1", "jane_doe@contoso.com")]

    async def test_clear_reports_whether_removed(self):
        store = InMemorySecretStore()
        await store.save("k", "v")

        assert await store.clear("k") is True
        assert await store.clear("k") is False
