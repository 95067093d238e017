"""
Credential Store Interfaces

Defines contracts for the secure secret store and the volatile expiry store
backing the token cache.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple


ACCESS_MARKER = "_access_"
REFRESH_MARKER = "_refresh_"


def account_id_from_key(key: str) -> str:
    """
    Recover the owning account id from a token cache key.

    Keys look like ``{accountId}_access_{resourceId}_{tenantId}``; keys that
    follow no known layout are owned by themselves.
    """
    for marker in (ACCESS_MARKER, REFRESH_MARKER):
        account_id, found, _ = key.partition(marker)
        if found:
            return account_id
    return key


class ISecretStore(ABC):
    """Interface for secure string storage"""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the store (open connections, create schema, etc.)"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close store connections and cleanup"""
        pass

    @abstractmethod
    async def save(self, key: str, value: str) -> None:
        """
        Save a secret, replacing any previous value.

        Args:
            key: Secret key
            value: Secret value
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get a secret.

        Args:
            key: Secret key

        Returns:
            Secret value or None if not found
        """
        pass

    @abstractmethod
    async def find_all(self, prefix: str) -> List[Tuple[str, str]]:
        """
        Find secrets whose key starts with ``prefix``.

        Returns:
            ``(key, account_id)`` pairs
        """
        pass

    @abstractmethod
    async def clear(self, key: str) -> bool:
        """
        Delete a secret.

        Returns:
            True if a secret was deleted
        """
        pass


class IExpiryStore(ABC):
    """Interface for non-secret, volatile expiry storage"""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass
