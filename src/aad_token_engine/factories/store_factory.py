"""
Store Factory

Creates secret and expiry stores based on configuration.
"""

import structlog

from ..config import Settings
from ..cache import IExpiryStore, ISecretStore, InMemoryExpiryStore, InMemorySecretStore
from ..cache.sqlite import SQLiteSecretStore

logger = structlog.get_logger(__name__)


class StoreFactory:
    """Factory for creating credential stores"""

    @staticmethod
    def create_secret_store(settings: Settings) -> ISecretStore:
        """
        Create secret store based on configuration.

        Args:
            settings: Application settings

        Returns:
            Uninitialized secret store instance

        Raises:
            ValueError: If store type is not supported
        """
        store_type = settings.secret_store.lower()

        logger.info("Creating secret store", store_type=store_type)

        if store_type == "sqlite":
            return SQLiteSecretStore(
                settings.secret_store_path_resolved,
                service_name=settings.keyring_service_name,
            )
        elif store_type == "memory":
            return InMemorySecretStore()
        else:
            raise ValueError(f"Unsupported secret store: {store_type}")

    @staticmethod
    def create_expiry_store(settings: Settings) -> IExpiryStore:
        """Expiry values are only ever kept in memory"""
        return InMemoryExpiryStore()
