"""
AAD Token Engine

Token acquisition, caching and refresh for Azure Active Directory accounts
spanning multiple tenants and resources.
"""

__version__ = "0.1.0"

from .main import main

__all__ = ["main"]
