"""
Token cache module

Secret and expiry stores, and the token cache built on top of them.
"""

from .interface import IExpiryStore, ISecretStore, account_id_from_key
from .memory import InMemoryExpiryStore, InMemorySecretStore
from .token_cache import TokenCache

__all__ = [
    "IExpiryStore",
    "ISecretStore",
    "InMemoryExpiryStore",
    "InMemorySecretStore",
    "TokenCache",
    "account_id_from_key",
]
