"""
In-memory store implementations

Used for the volatile expiry index, and for secrets when persistence is not wanted.
"""

from typing import Dict, List, Optional, Tuple

from .interface import IExpiryStore, ISecretStore, account_id_from_key


class InMemorySecretStore(ISecretStore):
    """Secret store that lives for the lifetime of the process"""

    def __init__(self) -> None:
        self._secrets: Dict[str, str] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        self._secrets.clear()

    async def save(self, key: str, value: str) -> None:
        self._secrets[key] = value

    async def get(self, key: str) -> Optional[str]:
        return self._secrets.get(key)

    async def find_all(self, prefix: str) -> List[Tuple[str, str]]:
        return [
            (key, account_id_from_key(key))
            for key in sorted(self._secrets)
            if key.startswith(prefix)
        ]

    async def clear(self, key: str) -> bool:
        return self._secrets.pop(key, None) is not None


class InMemoryExpiryStore(IExpiryStore):
    """Expiry index; not required to survive a restart"""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)
