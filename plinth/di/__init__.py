"""
Plinth Dependency Injection

Minimal synchronous container: tokens map to factories with a lifetime.
Plugins receive the container through their PluginContext and use it to
register repositories and resolve shared services such as the buses.
"""

from .core import Container, token_to_key
from .providers import FactoryProvider, ValueProvider, ProviderMeta
from .scopes import ServiceLifetime
from .errors import (
    DIError,
    ProviderNotFoundError,
    DuplicateProviderError,
    ResolutionCycleError,
)

__all__ = [
    "Container",
    "token_to_key",
    "FactoryProvider",
    "ValueProvider",
    "ProviderMeta",
    "ServiceLifetime",
    "DIError",
    "ProviderNotFoundError",
    "DuplicateProviderError",
    "ResolutionCycleError",
]
