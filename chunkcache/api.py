"""
Memcache API

Single entry point tying the pieces together for application code:

    api = MemcacheApi(settings=Settings(HOSTSPEC=["cache1", "cache2"],
                                        PORT=[11211, 11211]))
    api.set("report", big_object, expire=3600)
    api.get_many(["report", "summary"])

    with api.locked("report"):
        ...

Values are pickled before storage. The instance itself can be pickled; on
unpickling it reconnects with the same settings and client factory.
"""

import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Set

from .backend import create_backend
from .backend.base import Client
from .backend.memory import MemoryClient
from .cache.chunked import ChunkedValueStore
from .cache.lock import DistributedLock
from .cache.multiget import MultiGetCoalescer
from .cluster.failover import NO_SERVERS_MESSAGE, FailoverTracker
from .config.settings import Settings, settings as default_settings
from .exceptions import ConfigurationError, UnserializeError, VersionMismatchError
from .protocol.serializer import serialize, unserialize

logger = logging.getLogger(__name__)

# Version of the pickled state of MemcacheApi
VERSION = 1


class MemcacheApi:
    """
    Chunked get/set, batched reads and spinlocks over a memcache pool.

    Attributes:
        settings: Pool, routing and storage configuration
        client_factory: Callable returning an unconnected client; must be
            picklable for the API instance to be picklable
    """

    def __init__(self, client_factory: Callable[[], Client] = MemoryClient,
                 settings: Optional[Settings] = None):
        self.client_factory = client_factory
        self.settings = settings if settings is not None else default_settings
        self.init()

    def init(self) -> None:
        """
        Connect to the configured servers and build the components.

        Raises:
            ConfigurationError: If no server could be added to the pool
        """
        cfg = self.settings
        self.client = self.client_factory()
        self.backend = create_backend(
            cfg.BACKEND, self.client, cfg.PREFIX,
            compressed=cfg.COMPRESSION, large_items=cfg.LARGE_ITEMS,
        )
        self.failover_tracker = FailoverTracker()

        for i, host in enumerate(cfg.HOSTSPEC):
            port = cfg.PORT[i] if i < len(cfg.PORT) else 0
            weight = cfg.WEIGHT[i] if i < len(cfg.WEIGHT) else 0
            if self.backend.connect(host, port, weight, cfg.PERSISTENT, self.failover):
                self.failover_tracker.register(host, port)

        if not len(self.failover_tracker):
            raise ConfigurationError(NO_SERVERS_MESSAGE)

        self.backend.set_compress_threshold(cfg.COMPRESS_THRESHOLD)

        self._nonexistent: Set[str] = set()
        self.store = ChunkedValueStore(self.backend, self._nonexistent, cfg.MAX_CHUNK_SIZE)
        self.reader = MultiGetCoalescer(self.backend, self._nonexistent)
        self.locks = DistributedLock(
            self.backend, cfg.LOCK_TIMEOUT, cfg.LOCK_SUFFIX,
            check=self.failover_tracker.ensure_available,
        )

        logger.debug(
            "Connected to the following memcache servers: "
            f"{', '.join(self.failover_tracker.servers)}"
        )

    def shutdown(self) -> None:
        """Release every lock this instance still holds."""
        self.locks.release_all()

    def failover(self, host: str, port: int) -> None:
        """Failure callback for the client; raises ServerLossError when the pool is empty."""
        self.failover_tracker.on_server_unreachable(host, port)

    # Data

    def get(self, key: str) -> Any:
        """
        Get the value stored under a key.

        Returns:
            The value, or None if the key is absent or cannot be decoded
        """
        return self.get_many([key]).get(key)

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """
        Get the values stored under several keys in at most two round trips.

        Returns:
            Mapping of the keys found, in request order, to their values

        Raises:
            TypeError: If keys is a single string
        """
        self.failover_tracker.ensure_available()
        out = {}
        for key, data in self.reader.get_many(keys).items():
            try:
                out[key] = unserialize(data)
            except UnserializeError as e:
                logger.warning(f"Discarding {key}: {e}")
        return out

    def set(self, key: str, value: Any, expire: int = 0) -> bool:
        """
        Set the value of a key.

        Args:
            key: The key
            value: Any picklable value
            expire: Expiration time in seconds (0 = never)

        Returns:
            True on success
        """
        self.failover_tracker.ensure_available()
        return self.store.put(key, serialize(value), expire)

    def replace(self, key: str, value: Any, expire: int = 0) -> bool:
        """
        Replace the value of a key.

        Returns:
            True on success, False if the key doesn't exist
        """
        self.failover_tracker.ensure_available()
        return self.store.replace(key, serialize(value), expire)

    def delete(self, key: str, timeout: int = 0) -> bool:
        """Delete a key; False if it is known not to exist."""
        self.failover_tracker.ensure_available()
        return self.store.delete(key, timeout)

    # Locking

    def lock(self, key: str) -> None:
        """
        Obtain the lock on a key, waiting as long as needed.

        Raises:
            ServerLossError: If the pool is, or becomes, empty while waiting
        """
        self.locks.lock(key)

    def unlock(self, key: str) -> None:
        """Release the lock on a key."""
        self.failover_tracker.ensure_available()
        self.locks.unlock(key)

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        self.lock(key)
        try:
            yield
        finally:
            self.unlock(key)

    # Pool

    def flush(self) -> bool:
        """Mark all entries on the pool as expired."""
        self.failover_tracker.ensure_available()
        return self.backend.flush()

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Statistics of every server in the pool."""
        self.failover_tracker.ensure_available()
        return self.backend.stats()

    # Pickling

    def __getstate__(self):
        return (VERSION, asdict(self.settings), self.client_factory)

    def __setstate__(self, state) -> None:
        if not isinstance(state, tuple) or len(state) != 3 or state[0] != VERSION:
            raise VersionMismatchError("Cache version change")
        _, params, self.client_factory = state
        self.settings = Settings(**params)
        self.init()

    def __repr__(self) -> str:
        return f"MemcacheApi(backend={self.backend!r}, servers={self.failover_tracker.servers})"
