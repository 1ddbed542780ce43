"""A single client WebSocket and its pairing binding."""

import asyncio
import logging
import secrets
from enum import Enum
from typing import Any, Optional

from aiohttp import WSCloseCode

from pairlink.errors import PairingError
from pairlink.message import Envelope

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Role a connection plays in its session."""

    UNBOUND = "unbound"
    PC = "pc"
    MOBILE = "mobile"


class Connection:
    """Wrapper around one client WebSocket.

    Tracks the role and session code assigned on registration, and the
    ``alive`` flag driven by the liveness monitor.
    """

    def __init__(
        self,
        ws: Any,  # WebSocketResponse or compatible
        transport: Optional[asyncio.Transport] = None,
        connection_id: Optional[str] = None,
    ):
        """Initialize connection.

        Args:
            ws: The prepared WebSocket.
            transport: Underlying transport, used to drop the connection
                without a closing handshake.
            connection_id: Identifier for log lines. Random if omitted.
        """
        self._ws = ws
        self._transport = transport
        self.connection_id = connection_id or secrets.token_hex(4)
        self.role = Role.UNBOUND
        self.session_code: Optional[str] = None
        self.alive = True

    def __repr__(self) -> str:
        return f"Connection({self.connection_id}, role={self.role.value})"

    @property
    def is_open(self) -> bool:
        """Whether the WebSocket can still be written to."""
        return not self._ws.closed

    @property
    def is_bound(self) -> bool:
        """Whether this connection joined a session."""
        return self.role is not Role.UNBOUND

    def bind(self, role: Role, code: str) -> None:
        """Attach this connection to a session. Happens once per connection.

        Raises:
            PairingError: If already bound.
        """
        if self.is_bound:
            raise PairingError(
                f"Connection {self.connection_id} already bound as {self.role.value}"
            )
        if role is Role.UNBOUND:
            raise PairingError("Cannot bind to the unbound role")
        self.role = role
        self.session_code = code

    async def send(self, envelope: Envelope) -> bool:
        """Send an envelope once.

        Returns:
            True if written, False if the socket was closed or the write failed.
        """
        if not self.is_open:
            return False
        try:
            await self._ws.send_str(envelope.to_json())
        except ConnectionError as e:
            logger.warning(f"Send to {self.connection_id} failed: {e}")
            return False
        return True

    def mark_alive(self) -> None:
        """Record a liveness acknowledgment (transport pong)."""
        self.alive = True

    async def ping(self) -> None:
        """Send a transport-level liveness probe."""
        await self._ws.ping()

    async def close(self, code: int = WSCloseCode.OK, message: bytes = b"") -> None:
        """Close with a handshake. No-op if already closed."""
        if self.is_open:
            await self._ws.close(code=code, message=message)

    async def terminate(self) -> None:
        """Drop the connection without waiting for a closing handshake."""
        if self._transport is not None and not self._transport.is_closing():
            # Discards buffered writes; close() would wait to flush them
            self._transport.abort()
        elif self.is_open:
            await self._ws.close(code=WSCloseCode.GOING_AWAY, message=b"Liveness timeout")
