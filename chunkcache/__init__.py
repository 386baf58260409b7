"""
chunkcache: Chunked values and locks over a memcache-style pool

Client-side layer that stores values larger than the per-entry ceiling of a
memcache server pool by splitting them across several keys, fetches many
values in at most two round trips, and offers a cooperative spinlock shared
between processes.
"""

from .api import MemcacheApi
from .exceptions import (
    ConfigurationError,
    MemcacheError,
    ServerLossError,
    VersionMismatchError,
)

__version__ = "1.0.0"

__all__ = [
    "MemcacheApi",
    "MemcacheError",
    "ConfigurationError",
    "ServerLossError",
    "VersionMismatchError",
]
