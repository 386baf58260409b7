"""
Store Backend Interface

A StoreBackend wraps an already connected memcache client and decides how
logical keys become the physical keys sent to the servers. The two
implementations differ only in key encoding and in whether chunked storage of
large items is possible; both forward the store primitives unchanged.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple

# (payload, flags) as returned by the client for a hit
Entry = Tuple[bytes, int]

FailureCallback = Callable[[str, int], None]


class Client(Protocol):
    """Primitives expected from the memcache client library."""

    def get(self, key: str) -> Optional[Entry]: ...

    def get_multi(self, keys: Iterable[str]) -> Optional[Dict[str, Entry]]: ...

    def set(self, key: str, value: bytes, flags: int = 0, expire: int = 0) -> bool: ...

    def add(self, key: str, value: bytes, flags: int = 0, expire: int = 0) -> bool: ...

    def replace(self, key: str, value: bytes, flags: int = 0, expire: int = 0) -> bool: ...

    def delete(self, key: str, expire: int = 0) -> bool: ...

    def flush_all(self) -> bool: ...

    def get_stats(self) -> Dict[str, Dict[str, Any]]: ...

    def add_server(
        self,
        host: str,
        port: int = 0,
        weight: int = 1,
        persistent: bool = False,
        failure_callback: Optional[FailureCallback] = None,
    ) -> bool: ...

    def set_compress_threshold(self, threshold: int) -> None: ...


class StoreBackend(ABC):
    """
    Key routing strategy bound to a client.

    Attributes:
        client: The underlying memcache client
        prefix: Key namespace
        compressed: Whether entries are flagged for compression
        large_items: Whether values may be split across several entries
    """

    def __init__(self, client: Client, prefix: str, compressed: bool = False,
                 large_items: bool = True):
        self.client = client
        self.prefix = prefix
        self.compressed = compressed
        self.large_items = large_items

    @abstractmethod
    def encode_key(self, key: str) -> str:
        """Map a logical key to the physical key sent to the store."""

    def chunk_key(self, key: str, index: int) -> str:
        """Physical key of chunk ``index`` of a logical key."""
        if index == 0:
            return self.encode_key(key)
        return self.encode_key(f"{key}_s{index}")

    def connect(self, host: str, port: int, weight: int, persistent: bool,
                failure_callback: FailureCallback) -> bool:
        return self.client.add_server(
            host, port, weight or 1, persistent, failure_callback
        )

    def set_compress_threshold(self, threshold: int) -> None:
        if threshold:
            self.client.set_compress_threshold(threshold)

    # Store primitives on physical keys

    def get(self, key: str) -> Optional[Entry]:
        return self.client.get(key)

    def get_multi(self, keys: Iterable[str]) -> Optional[Dict[str, Entry]]:
        return self.client.get_multi(list(keys))

    def set(self, key: str, value: bytes, flags: int, expire: int = 0) -> bool:
        return self.client.set(key, value, flags, expire)

    def add(self, key: str, value: bytes, flags: int, expire: int = 0) -> bool:
        return self.client.add(key, value, flags, expire)

    def replace(self, key: str, value: bytes, flags: int, expire: int = 0) -> bool:
        return self.client.replace(key, value, flags, expire)

    def delete(self, key: str, expire: int = 0) -> bool:
        return self.client.delete(key, expire)

    def flush(self) -> bool:
        return self.client.flush_all()

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return self.client.get_stats()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(prefix={self.prefix!r}, "
                f"compressed={self.compressed}, large_items={self.large_items})")
