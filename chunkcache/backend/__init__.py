"""
Backend module for chunkcache.

Provides the key routing strategies and the in-process memcache client:
- StoreBackend: interface shared by both strategies
- ExternalHashingBackend: md5(prefix + key) physical keys
- SelfHashingBackend: keys passed through to a self-hashing client
- MemoryClient: in-process memcache-style client
"""

from typing import Dict, Type

from .base import Client, StoreBackend
from .external import ExternalHashingBackend
from .memory import MemoryClient
from .self_hashing import SelfHashingBackend

BACKENDS: Dict[str, Type[StoreBackend]] = {
    "external": ExternalHashingBackend,
    "self_hashing": SelfHashingBackend,
}


def create_backend(name: str, client: Client, prefix: str,
                   compressed: bool = False, large_items: bool = True) -> StoreBackend:
    """
    Build the backend registered under ``name``.

    Raises:
        ValueError: If no backend has that name
    """
    if name not in BACKENDS:
        raise ValueError(f"Unknown backend: {name}. Must be one of {sorted(BACKENDS)}")
    return BACKENDS[name](client, prefix, compressed, large_items)


__all__ = [
    "BACKENDS",
    "Client",
    "StoreBackend",
    "ExternalHashingBackend",
    "SelfHashingBackend",
    "MemoryClient",
    "create_backend",
]
