"""
chunkcache Configuration Settings

This module contains all configuration values for the memcache API layer.
Defaults can be overridden through CHUNKCACHE_* environment variables or with
dataclasses.replace() on a Settings instance.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _env_list(name: str, default: str) -> List[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


@dataclass
class Settings:
    """Memcache pool and chunking settings."""

    # Server pool
    HOSTSPEC: List[str] = field(
        default_factory=lambda: _env_list("CHUNKCACHE_HOSTSPEC", "localhost")
    )
    PORT: List[int] = field(
        default_factory=lambda: [int(p) for p in _env_list("CHUNKCACHE_PORT", "11211")]
    )
    WEIGHT: List[int] = field(
        default_factory=lambda: [int(w) for w in _env_list("CHUNKCACHE_WEIGHT", "")]
    )
    PERSISTENT: bool = _env_bool("CHUNKCACHE_PERSISTENT", "false")

    # Key routing: "external" hashes keys client-side, "self_hashing" leaves
    # hashing and prefixing to the client library
    BACKEND: str = os.environ.get("CHUNKCACHE_BACKEND", "external")
    PREFIX: str = os.environ.get("CHUNKCACHE_PREFIX", "chunkcache")

    # Value storage
    COMPRESSION: bool = _env_bool("CHUNKCACHE_COMPRESSION", "false")
    COMPRESS_THRESHOLD: int = int(os.environ.get("CHUNKCACHE_COMPRESS_THRESHOLD", "0"))
    LARGE_ITEMS: bool = _env_bool("CHUNKCACHE_LARGE_ITEMS", "true")
    # Slightly below memcached's 1 MB slab size to leave room for overhead
    MAX_CHUNK_SIZE: int = 1000000

    # Locking
    LOCK_TIMEOUT: int = 30
    LOCK_SUFFIX: str = "_l"

    # In-process client
    MEMORY_MAX_KEYS: int = int(os.environ.get("CHUNKCACHE_MEMORY_MAX_KEYS", "100000"))

    # Logging settings
    LOG_LEVEL: str = os.environ.get("CHUNKCACHE_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
