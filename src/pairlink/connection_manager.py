"""Track open client connections."""

import asyncio
import logging
from typing import Iterator

from aiohttp import WSCloseCode

from pairlink.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Set of currently open connections.

    Mutations happen only on the event loop thread, between awaits.
    """

    def __init__(self):
        self.connections: dict[str, Connection] = {}

    def add(self, connection: Connection) -> None:
        """Start tracking a connection."""
        self.connections[connection.connection_id] = connection
        logger.debug(f"Connection opened: {connection.connection_id} ({len(self)} open)")

    def remove(self, connection: Connection) -> None:
        """Stop tracking a connection. No-op if unknown."""
        if self.connections.get(connection.connection_id) is connection:
            del self.connections[connection.connection_id]
            logger.debug(
                f"Connection closed: {connection.connection_id} ({len(self)} open)"
            )

    def snapshot(self) -> list[Connection]:
        """List of tracked connections, safe to iterate across awaits."""
        return list(self.connections.values())

    async def close_all(self) -> None:
        """Close all connections gracefully."""
        conns = self.snapshot()
        if conns:
            await asyncio.gather(
                *[
                    conn.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
                    for conn in conns
                ],
                return_exceptions=True,
            )

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self.connections)
