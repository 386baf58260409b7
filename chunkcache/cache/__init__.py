"""Cache module for chunkcache."""

from .chunked import ChunkedValueStore
from .lock import DistributedLock
from .multiget import MultiGetCoalescer

__all__ = ["ChunkedValueStore", "DistributedLock", "MultiGetCoalescer"]
