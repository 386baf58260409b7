"""
In-Process Memcache Client

This module implements a memcache-style client whose "pool" lives in the
current process. It behaves like a real server pool where chunkcache relies
on it:

- Per-entry flags are stored and returned untouched
- Expiration: entries expire lazily after their TTL
- Eviction: the least recently used entry is dropped when the store is full
- Item size ceiling: writes above max_item_size fail like memcached's
  "object too large"
- add() is atomic, so threads can contend for lock entries
- Servers are registered with a failure callback that fail_server() invokes

All entries share one store regardless of how many servers are registered.
"""

import logging
import threading
import time
import zlib
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, Optional, Set, Tuple

from ..config.settings import settings
from ..protocol.flags import COMPRESSED_BIT
from .base import Entry, FailureCallback

logger = logging.getLogger(__name__)

# memcached's default item size limit (1 MB slab)
DEFAULT_MAX_ITEM_SIZE = 1024 * 1024

# Values shorter than this are stored uncompressed even when flagged
DEFAULT_COMPRESS_THRESHOLD = 20000


def server_name(host: str, port: int) -> str:
    """Address of a server as reported in stats and failover."""
    return f"{host}:{port}" if port else host


class MemoryClient:
    """
    Memcache-compatible client backed by an in-process OrderedDict.

    Internal Storage:
        key -> (payload, flags, expiration_timestamp, compressed)
        expiration_timestamp = 0 means no expiration

    Attributes:
        max_size: Maximum number of entries before LRU eviction
        max_item_size: Largest payload accepted by set/add/replace
        prefix: Prepended to every key, as self-hashing clients do
        compress_threshold: Minimum length before a flagged value is compressed
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        max_item_size: int = DEFAULT_MAX_ITEM_SIZE,
        prefix: str = "",
        down_hosts: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the client.

        Args:
            max_size: Maximum number of entries (default settings.MEMORY_MAX_KEYS)
            max_item_size: Largest payload in bytes
            prefix: Key prefix applied internally
            down_hosts: Server names that add_server() reports as unreachable
            clock: Time source used for expiration
        """
        self.max_size = max_size if max_size is not None else settings.MEMORY_MAX_KEYS
        self.max_item_size = max_item_size
        self.prefix = prefix
        self.compress_threshold = DEFAULT_COMPRESS_THRESHOLD
        self._down_hosts: Set[str] = set(down_hosts)
        self._clock = clock

        self._store: "OrderedDict[str, Tuple[bytes, int, float, bool]]" = OrderedDict()
        self._servers: "OrderedDict[str, Optional[FailureCallback]]" = OrderedDict()
        self._stats: Dict[str, int] = dict.fromkeys(
            ("cmd_get", "cmd_set", "get_hits", "get_misses", "evictions"), 0
        )
        self._lock = threading.RLock()

    # Server registration

    def add_server(
        self,
        host: str,
        port: int = 0,
        weight: int = 1,
        persistent: bool = False,
        failure_callback: Optional[FailureCallback] = None,
    ) -> bool:
        """Register a server; False if it is listed as down."""
        name = server_name(host, port)
        if name in self._down_hosts:
            return False
        with self._lock:
            self._servers[name] = failure_callback
        return True

    def fail_server(self, host: str, port: int = 0) -> None:
        """
        Drop a server as if it stopped answering, then run its failure callback.

        The callback may raise; the server is removed either way.
        """
        name = server_name(host, port)
        with self._lock:
            callback = self._servers.pop(name, None)
        logger.debug(f"Server {name} marked as failed")
        if callback is not None:
            callback(host, port)

    @property
    def servers(self) -> Tuple[str, ...]:
        return tuple(self._servers)

    def set_compress_threshold(self, threshold: int) -> None:
        self.compress_threshold = threshold

    # Reads

    def get(self, key: str) -> Optional[Entry]:
        """
        Retrieve a single entry.

        Returns:
            (payload, flags) if found and not expired, None otherwise
        """
        result = self.get_multi([key])
        if not result:
            return None
        return result.get(key)

    def get_multi(self, keys: Iterable[str]) -> Optional[Dict[str, Entry]]:
        """
        Retrieve many entries in one round trip.

        Returns:
            Mapping of the keys that were found to (payload, flags), or None
            if no server is available
        """
        with self._lock:
            if not self._servers:
                return None
            found: Dict[str, Entry] = {}
            for key in keys:
                self._stats["cmd_get"] += 1
                entry = self._lookup(self.prefix + key)
                if entry is None:
                    self._stats["get_misses"] += 1
                    continue
                self._stats["get_hits"] += 1
                found[key] = entry
            return found

    def _lookup(self, full_key: str) -> Optional[Entry]:
        if full_key not in self._store:
            return None

        payload, flags, expires_at, compressed = self._store[full_key]
        if expires_at and expires_at <= self._clock():
            # Lazy expiration
            self._store.pop(full_key, None)
            return None

        # Mark as most recently used
        self._store.move_to_end(full_key)
        if compressed:
            payload = zlib.decompress(payload)
        return payload, flags

    def _exists(self, full_key: str) -> bool:
        if full_key not in self._store:
            return False
        expires_at = self._store[full_key][2]
        if expires_at and expires_at <= self._clock():
            self._store.pop(full_key, None)
            return False
        return True

    # Writes

    def set(self, key: str, value: bytes, flags: int = 0, expire: int = 0) -> bool:
        """Store an entry unconditionally."""
        with self._lock:
            return self._store_entry(key, value, flags, expire)

    def add(self, key: str, value: bytes, flags: int = 0, expire: int = 0) -> bool:
        """Store an entry only if the key is absent; atomic."""
        with self._lock:
            if self._servers and self._exists(self.prefix + key):
                return False
            return self._store_entry(key, value, flags, expire)

    def replace(self, key: str, value: bytes, flags: int = 0, expire: int = 0) -> bool:
        """Store an entry only if the key already exists."""
        with self._lock:
            if self._servers and not self._exists(self.prefix + key):
                return False
            return self._store_entry(key, value, flags, expire)

    def _store_entry(self, key: str, value: bytes, flags: int, expire: int) -> bool:
        if not self._servers:
            return False
        if isinstance(value, str):
            value = value.encode('utf-8')

        compressed = bool(flags & COMPRESSED_BIT) and len(value) >= self.compress_threshold
        payload = zlib.compress(value) if compressed else value
        if len(payload) > self.max_item_size:
            logger.debug(f"Rejecting {key}: {len(payload)} bytes exceeds item size")
            return False

        self._stats["cmd_set"] += 1
        full_key = self.prefix + key
        expires_at = self._clock() + expire if expire and expire > 0 else 0

        if full_key in self._store:
            self._store[full_key] = (payload, flags, expires_at, compressed)
            self._store.move_to_end(full_key)
            return True

        # Evict LRU if at capacity
        if len(self._store) >= self.max_size:
            self._store.popitem(last=False)
            self._stats["evictions"] += 1

        self._store[full_key] = (payload, flags, expires_at, compressed)
        return True

    def delete(self, key: str, expire: int = 0) -> bool:
        """
        Delete an entry.

        Returns:
            True if the entry was deleted, False if it didn't exist
        """
        with self._lock:
            if not self._servers:
                return False
            full_key = self.prefix + key
            if not self._exists(full_key):
                return False
            self._store.pop(full_key, None)
            return True

    def flush_all(self) -> bool:
        """Remove every entry."""
        with self._lock:
            if not self._servers:
                return False
            self._store.clear()
            return True

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries (active expiration).

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            to_delete = [k for k, (_, _, exp, _) in self._store.items() if exp and exp <= now]
            for key in to_delete:
                self._store.pop(key, None)
            return len(to_delete)

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """
        Get statistics per registered server.

        Every server reports the shared store:
        - curr_items: Entries currently held (expired ones included)
        - bytes: Payload bytes held
        - cmd_get / cmd_set: Keys read / entries written
        - get_hits / get_misses: Read outcomes
        - evictions: Entries dropped by LRU eviction
        """
        with self._lock:
            stats = dict(self._stats)
            stats["curr_items"] = len(self._store)
            stats["bytes"] = sum(len(entry[0]) for entry in self._store.values())
            stats["limit_maxitems"] = self.max_size
            return {name: dict(stats) for name in self._servers}

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return self._exists(self.prefix + key)
