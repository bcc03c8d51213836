"""Adapters — capability providers for host-level side effects.

Public re-exports for convenient access.
"""

from hostprov.adapters.base import Provider, ProviderContext
from hostprov.adapters.mock import MockProvider
from hostprov.adapters.registry import ProviderRegistry, default_registry

__all__ = [
    "MockProvider",
    "Provider",
    "ProviderContext",
    "ProviderRegistry",
    "default_registry",
]
