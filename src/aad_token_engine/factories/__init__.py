"""
Factory classes for Dependency Injection

Provides factory methods to create implementations based on configuration.
"""

from .login_factory import LoginFlowFactory
from .store_factory import StoreFactory

__all__ = [
    "LoginFlowFactory",
    "StoreFactory",
]
