from __future__ import annotations

from typing import Final

import keyring
import structlog
from cryptography.fernet import Fernet
from keyring.errors import KeyringError

logger = structlog.get_logger(__name__)

DEFAULT_SERVICE_NAME: Final[str] = "aad-token-engine"
DEFAULT_KEY_NAME: Final[str] = "secret-store-key"


def get_or_create_fernet_key(
    key_name: str = DEFAULT_KEY_NAME, *, service_name: str = DEFAULT_SERVICE_NAME
) -> bytes:
    """Fetch an existing Fernet key from the OS keyring or create and persist a new one."""
    try:
        existing = keyring.get_password(service_name, key_name)
    except KeyringError as exc:
        logger.error("Keyring fetch failed", service_name=service_name, error=str(exc))
        raise

    if existing:
        return existing.encode("utf-8")

    key = Fernet.generate_key()
    try:
        keyring.set_password(service_name, key_name, key.decode("utf-8"))
    except KeyringError as exc:
        logger.error("Keyring store failed", service_name=service_name, error=str(exc))
        raise

    logger.info("Secret store key created", service_name=service_name, key_name=key_name)
    return key


def create_cipher(
    key_name: str = DEFAULT_KEY_NAME, *, service_name: str = DEFAULT_SERVICE_NAME
) -> Fernet:
    return Fernet(get_or_create_fernet_key(key_name, service_name=service_name))
