"""
AAD Token Engine CLI

Command line entry point: sign in, refresh accounts, print bearer tokens and
manage the token cache.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
import structlog

from .config import Settings, get_settings, load_dotenv_if_exists
from .di_container import DIContainer
from .errors import AzureAuthError
from .factories import LoginFlowFactory
from .models import AzureAccount

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "info") -> None:
    """Configure structlog on top of stdlib logging, writing to stderr"""
    logging.basicConfig(stream=sys.stderr, format="%(message)s")
    logging.getLogger().setLevel(getattr(logging, level.upper()))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Azure Active Directory token engine")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: from settings)",
    )
    parser.add_argument(
        "--flow",
        choices=LoginFlowFactory.get_available_flows(),
        help="Interactive sign-in flow (default: from settings)",
    )
    parser.add_argument(
        "--secret-store",
        choices=["sqlite", "memory"],
        help="Secret store implementation (default: from settings)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in interactively")
    login.add_argument("--output", type=Path, help="Write the account to this file")

    refresh = commands.add_parser("refresh", help="Refresh a saved account")
    refresh.add_argument("account", type=Path, help="Account file written by 'login'")

    token = commands.add_parser("token", help="Print a bearer token")
    token.add_argument("account", type=Path, help="Account file written by 'login'")
    token.add_argument("--tenant", help="Tenant ID (default: home tenant)")
    token.add_argument(
        "--resource",
        choices=["management", "arm"],
        default="management",
        help="Resource the token is scoped to",
    )

    tenants = commands.add_parser("tenants", help="List the tenants of a saved account")
    tenants.add_argument("account", type=Path, help="Account file written by 'login'")

    clear = commands.add_parser("clear-cache", help="Remove cached tokens")
    clear.add_argument("--account", type=Path, help="Only remove this account's tokens")

    ignored = commands.add_parser("ignored-tenants", help="Show or edit the ignored-tenant list")
    ignored.add_argument("--add", metavar="TENANT_ID", help="Ignore a tenant")
    ignored.add_argument("--remove", metavar="TENANT_ID", help="Stop ignoring a tenant")

    return parser


def _read_account(path: Path) -> AzureAccount:
    return AzureAccount.model_validate_json(path.read_text(encoding="utf-8"))


def _write_account(path: Path, account: AzureAccount) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(account.model_dump_json(indent=2), encoding="utf-8")


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    update: Dict[str, Any] = {}
    if args.flow:
        update["auth_flow"] = args.flow
    if args.secret_store:
        update["secret_store"] = args.secret_store
    return settings.model_copy(update=update) if update else settings


async def run_command(args: argparse.Namespace, container: DIContainer) -> int:
    """Execute a parsed command. Returns the process exit code."""
    if args.command == "ignored-tenants":
        exclusions = container.get_tenant_exclusions()
        if args.add:
            exclusions.add(args.add)
        if args.remove:
            exclusions.remove(args.remove)
        _emit(exclusions.values())
        return 0

    engine = await container.get_engine()

    if args.command == "login":
        account = await engine.start_login()
        if account is None:
            logger.error("Sign-in did not produce an account")
            return 1
        if args.output:
            _write_account(args.output, account)
        _emit(json.loads(account.model_dump_json()))
        return 0

    if args.command == "clear-cache":
        if args.account:
            await engine.delete_account_cache(_read_account(args.account).key)
        else:
            await engine.delete_all_cache()
        return 0

    account = _read_account(args.account)

    if args.command == "refresh":
        refreshed = await engine.refresh_access(account)
        if refreshed.delete:
            # Written by an incompatible engine version
            await engine.clear_credentials(refreshed.key)
            args.account.unlink(missing_ok=True)
            logger.warning("Account was outdated and has been removed; sign in again")
            return 2
        _write_account(args.account, refreshed)
        if refreshed.is_stale:
            logger.warning("Account is stale; sign in again")
            return 3
        _emit({"account": refreshed.key.account_id, "tenants": len(refreshed.properties.tenants)})
        return 0

    if args.command == "tenants":
        tenants: List[Dict[str, Any]] = [t.model_dump() for t in account.properties.tenants]
        _emit(tenants)
        return 0

    if args.command == "token":
        provider = engine.provider_settings
        resource = (
            provider.azure_management_resource if args.resource == "arm"
            else provider.windows_management_resource
        )
        tenant_id = args.tenant or engine.get_home_tenant(account).id
        try:
            token = await engine.get_account_security_token(account, tenant_id, resource)
        finally:
            if account.is_stale:
                _write_account(args.account, account)
        if token is None:
            logger.error("No token available; re-authentication is required", tenant_id=tenant_id)
            return 3
        _emit({
            "accessToken": token.token,
            "tokenType": token.token_type,
            "tenant": tenant_id,
            "resource": resource.resource,
        })
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def _main_async(args: argparse.Namespace, settings: Settings) -> int:
    container = DIContainer(settings, display_message=lambda message: print(message, file=sys.stderr))
    try:
        return await run_command(args, container)
    except AzureAuthError as e:
        logger.error("Command failed", kind=e.kind.value, error=e.printable())
        return 1
    finally:
        await container.close()


def main() -> Optional[int]:
    """Main entry point with command line argument parsing"""
    load_dotenv_if_exists()

    args = build_parser().parse_args()
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "info"))

    settings = _apply_overrides(get_settings(), args)
    if args.log_level is None:
        configure_logging(settings.log_level)

    return asyncio.run(_main_async(args, settings))


if __name__ == "__main__":
    sys.exit(main())
