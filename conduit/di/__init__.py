"""
Conduit DI - Minimal dependency container used as the service locator.
"""

from .core import Container
from .errors import DIError, ProviderNotFoundError, DuplicateProviderError
from .providers import ProviderMeta, ValueProvider, FactoryProvider

__all__ = [
    "Container",
    "DIError",
    "ProviderNotFoundError",
    "DuplicateProviderError",
    "ProviderMeta",
    "ValueProvider",
    "FactoryProvider",
]
