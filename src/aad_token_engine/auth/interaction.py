"""
Interaction handling

Decides whether a tenant that needs interactive re-authentication should be
prompted for, and runs the sign-in when the user agrees.
"""

import asyncio
import json
from functools import partial
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional
import structlog

from ..models import AADResource, OAuthTokenResponse, Tenant
from .interface import ConsentChoice, IConsentPrompt, LoginResult

logger = structlog.get_logger(__name__)


LoginCallable = Callable[[Tenant, AADResource], Awaitable[Optional[LoginResult]]]


def load_tenant_filter(path: Path, seed: Iterable[str] = ()) -> List[str]:
    """Read the ignored-tenant list from a JSON file, falling back to ``seed``"""
    if not path.exists():
        return list(seed)
    try:
        values = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("Failed to read tenant filter", path=str(path), error=str(e))
        return list(seed)
    if not isinstance(values, list):
        logger.warning("Ignoring malformed tenant filter", path=str(path))
        return list(seed)
    return [str(value) for value in values]


def save_tenant_filter(path: Path, values: List[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(values, indent=2), encoding="utf-8")


class TenantExclusionSet:
    """
    Tenants the user chose to permanently ignore.

    Every operation re-reads through ``load`` and writes back through
    ``persist``, so concurrent writers resolve last-writer-wins.
    """

    def __init__(
        self,
        load: Callable[[], Iterable[str]],
        persist: Callable[[List[str]], None],
    ) -> None:
        self._load = load
        self._persist = persist

    @classmethod
    def in_memory(cls, initial: Iterable[str] = ()) -> "TenantExclusionSet":
        state = {"values": list(initial)}

        def persist(values: List[str]) -> None:
            state["values"] = list(values)

        return cls(lambda: state["values"], persist)

    @classmethod
    def from_file(cls, path: Path, seed: Iterable[str] = ()) -> "TenantExclusionSet":
        seed = list(seed)
        return cls(partial(load_tenant_filter, path, seed), partial(save_tenant_filter, path))

    def values(self) -> List[str]:
        return sorted(set(self._load()))

    def contains(self, tenant_id: str) -> bool:
        return tenant_id in set(self._load())

    def add(self, tenant_id: str) -> None:
        current = set(self._load())
        current.add(tenant_id)
        self._persist(sorted(current))
        logger.info("Tenant added to ignore list", tenant_id=tenant_id)

    def remove(self, tenant_id: str) -> bool:
        current = set(self._load())
        if tenant_id not in current:
            return False
        current.discard(tenant_id)
        self._persist(sorted(current))
        logger.info("Tenant removed from ignore list", tenant_id=tenant_id)
        return True


class ConsoleConsentPrompt(IConsentPrompt):
    """Consent prompt reading the answer from stdin"""

    def __init__(self, read_line: Callable[[str], str] = input) -> None:
        self._read_line = read_line

    async def ask(self, tenant: Tenant, resource: AADResource) -> ConsentChoice:
        message = (
            f"Your tenant '{tenant.display_name} ({tenant.id})' requires you to re-authenticate "
            f"to access {resource.id} resources.\n"
            "[o]pen sign-in, [c]ancel, or [i]gnore this tenant? "
        )
        answer = await asyncio.to_thread(self._read_line, message)
        answer = (answer or "").strip().lower()
        if answer in ("o", "open"):
            return ConsentChoice.OPEN
        if answer in ("i", "ignore"):
            return ConsentChoice.IGNORE_TENANT
        return ConsentChoice.CANCEL


class InteractionCoordinator:
    """Gatekeeper between an ``interaction_required`` signal and interactive sign-in"""

    def __init__(self, exclusions: TenantExclusionSet, prompt: IConsentPrompt) -> None:
        self.exclusions = exclusions
        self.prompt = prompt

    async def should_interact(self, tenant: Tenant, resource: AADResource) -> bool:
        """
        Ask the user whether to start interactive sign-in for this tenant.

        Excluded tenants are declined without prompting. Choosing to ignore the
        tenant adds it to the exclusion set before declining.
        """
        if not tenant.id and not tenant.display_name:
            raise ValueError("Tenant did not have display name or id")

        if self.exclusions.contains(tenant.id):
            logger.debug("Tenant is ignored, skipping interaction", tenant_id=tenant.id)
            return False

        choice = await self.prompt.ask(tenant, resource)
        logger.info("Re-authentication prompt answered", tenant_id=tenant.id, choice=choice.value)

        if choice == ConsentChoice.IGNORE_TENANT:
            self.exclusions.add(tenant.id)
            return False

        return choice == ConsentChoice.OPEN

    async def handle_interaction_required(
        self, tenant: Tenant, resource: AADResource, login: LoginCallable
    ) -> Optional[OAuthTokenResponse]:
        """Prompt if allowed, then run ``login`` and return its token response"""
        if not await self.should_interact(tenant, resource):
            return None

        result = await login(tenant, resource)
        if result is None:
            return None
        if result.auth_complete is not None:
            result.auth_complete.resolve()
        return result.response
