"""
Server Pool Failover Tracking

The memcache client reports servers it can no longer reach through a failure
callback. FailoverTracker keeps the list of servers still considered active
and turns an empty pool into a hard error for every later operation.
"""

import logging
from typing import List, Tuple

from ..exceptions import ServerLossError

logger = logging.getLogger(__name__)

NO_SERVERS_MESSAGE = "Could not connect to any defined memcache servers."


class FailoverTracker:
    """
    Active server set of one API instance.

    Servers are named "host:port", or just "host" when the port is 0
    (unix sockets).
    """

    def __init__(self):
        self._servers: List[str] = []

    @staticmethod
    def server_name(host: str, port: int) -> str:
        return f"{host}:{port}" if port else host

    def register(self, host: str, port: int) -> str:
        """Add a server that accepted the connection."""
        name = self.server_name(host, port)
        if name not in self._servers:
            self._servers.append(name)
        return name

    def on_server_unreachable(self, host: str, port: int) -> None:
        """
        Failure callback handed to the client for every server.

        Raises:
            ServerLossError: If the last active server was removed
        """
        name = self.server_name(host, port)
        if name not in self._servers:
            return
        self._servers.remove(name)
        logger.warning(f"Memcache server {name} unreachable, {len(self._servers)} left")
        if not self._servers:
            logger.error(NO_SERVERS_MESSAGE)
            raise ServerLossError(NO_SERVERS_MESSAGE)

    def ensure_available(self) -> None:
        """Raise ServerLossError if no server is left in the pool."""
        if not self._servers:
            raise ServerLossError(NO_SERVERS_MESSAGE)

    @property
    def servers(self) -> Tuple[str, ...]:
        return tuple(self._servers)

    def __len__(self) -> int:
        return len(self._servers)

    def __repr__(self) -> str:
        return f"FailoverTracker(servers={self._servers})"
