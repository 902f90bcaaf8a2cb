"""
Storage Layer.

This package handles data persistence: the configuration file and the
series discovery cache.
"""

from .cache import (
    DiscoveryCache,
    DiscoveryCacheEntry,
    JsonFileDiscoveryCache,
    MemoryDiscoveryCache,
)
from .config_manager import ConfigManager

__all__ = [
    "ConfigManager",
    "DiscoveryCache",
    "DiscoveryCacheEntry",
    "JsonFileDiscoveryCache",
    "MemoryDiscoveryCache",
]
