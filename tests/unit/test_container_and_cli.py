"""
Tests for dependency wiring and the command line entry point
"""

import json

import pytest

from aad_token_engine.auth import AzureAuth
from aad_token_engine.auth.flows import AuthorizationCodeLogin, DeviceCodeLogin
from aad_token_engine.cache import InMemorySecretStore
from aad_token_engine.cache.sqlite import SQLiteSecretStore
from aad_token_engine.di_container import DIContainer
from aad_token_engine.errors import AzureAuthError, ErrorKind
from aad_token_engine.factories import LoginFlowFactory, StoreFactory
from aad_token_engine.main import build_parser, run_command
from aad_token_engine.models import TokenClaims


@pytest.fixture
def container(mock_settings, consent_prompt):
    return DIContainer(mock_settings, consent_prompt=consent_prompt)


@pytest.fixture
def account_file(tmp_path, engine, user_claims):
    account = engine.create_account(TokenClaims(**user_claims), "user-oid", [])
    path = tmp_path / "account.json"
    path.write_text(account.model_dump_json())
    return path


@pytest.mark.unit
class TestFactories:
    def test_secret_store_selection(self, mock_settings, tmp_path):
        assert isinstance(StoreFactory.create_secret_store(mock_settings), InMemorySecretStore)

        sqlite_settings = mock_settings.model_copy(
            update={"secret_store": "sqlite", "secret_store_path": str(tmp_path / "s.db")}
        )
        assert isinstance(StoreFactory.create_secret_store(sqlite_settings), SQLiteSecretStore)

    def test_unsupported_store_raises(self, mock_settings):
        with pytest.raises(ValueError):
            StoreFactory.create_secret_store(mock_settings.model_copy(update={"secret_store": "vault"}))

    def test_login_flow_selection(self, mock_settings, fake_client):
        assert isinstance(LoginFlowFactory.create(mock_settings, fake_client), DeviceCodeLogin)

        auth_code = mock_settings.model_copy(update={"auth_flow": "authorization_code"})
        assert isinstance(LoginFlowFactory.create(auth_code, fake_client), AuthorizationCodeLogin)

        with pytest.raises(ValueError):
            LoginFlowFactory.create(mock_settings.model_copy(update={"auth_flow": "kerberos"}), fake_client)


@pytest.mark.unit
class TestDIContainer:
    async def test_engine_is_cached(self, container):
        engine = await container.get_engine()

        assert isinstance(engine, AzureAuth)
        assert await container.get_engine() is engine
        assert "secret_store" in container.get_container_info()["cached_services"]

        await container.close()
        assert container.get_container_info()["cached_services"] == []

    def test_file_backed_exclusions(self, mock_settings, tmp_path):
        settings = mock_settings.model_copy(
            update={"tenant_filter_path": str(tmp_path / "ignored.json"), "tenant_filter": ["seed"]}
        )

        exclusions = DIContainer(settings).get_tenant_exclusions()
        exclusions.add("t1")

        assert json.loads((tmp_path / "ignored.json").read_text()) == ["seed", "t1"]


@pytest.mark.unit
class TestRunCommand:
    async def test_ignored_tenants(self, container, capsys):
        args = build_parser().parse_args(["ignored-tenants", "--add", "t2"])

        assert await run_command(args, container) == 0
        assert json.loads(capsys.readouterr().out) == ["t2"]

    async def test_outdated_account_is_removed(self, container, account_file):
        data = json.loads(account_file.read_text())
        data["key"]["account_version"] = "1.0"
        account_file.write_text(json.dumps(data))
        args = build_parser().parse_args(["refresh", str(account_file)])

        assert await run_command(args, container) == 2
        assert not account_file.exists()

    async def test_stale_account_has_no_token(self, container, account_file):
        data = json.loads(account_file.read_text())
        data["is_stale"] = True
        data["properties"]["tenants"] = [{"id": "t1", "display_name": "T1"}]
        account_file.write_text(json.dumps(data))
        args = build_parser().parse_args(["token", str(account_file), "--tenant", "t1"])

        assert await run_command(args, container) == 3

    async def test_missing_base_tokens_mark_account_file_stale(self, container, account_file):
        data = json.loads(account_file.read_text())
        data["properties"]["tenants"] = [{"id": "B", "display_name": "Tenant B", "tenant_category": "Home"}]
        account_file.write_text(json.dumps(data))
        args = build_parser().parse_args(["token", str(account_file)])

        with pytest.raises(AzureAuthError) as exc_info:
            await run_command(args, container)

        assert exc_info.value.kind == ErrorKind.MISSING_BASE_TOKEN
        assert json.loads(account_file.read_text())["is_stale"] is True

    async def test_tenants_lists_saved_tenants(self, container, account_file, capsys):
        args = build_parser().parse_args(["tenants", str(account_file)])

        assert await run_command(args, container) == 0
        assert json.loads(capsys.readouterr().out) == []


@pytest.mark.unit
class TestParser:
    def test_flow_choices_follow_available_flows(self):
        for flow in LoginFlowFactory.get_available_flows():
            assert build_parser().parse_args(["--flow", flow, "ignored-tenants"]).flow == flow

        with pytest.raises(SystemExit):
            build_parser().parse_args(["--flow", "kerberos", "ignored-tenants"])
