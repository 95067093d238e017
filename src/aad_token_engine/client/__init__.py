"""
AAD Client module

HTTP client for the AAD token endpoint and the tenant listing.
"""

from .interface import IAADClient
from .aad_client import AADClient, redact

__all__ = [
    "IAADClient",
    "AADClient",
    "redact",
]
