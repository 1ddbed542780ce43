"""Pairing protocol handler.

Interprets control messages on each connection against the session
registry:

    Unbound --register-pc-----> BoundAsPC
    Unbound --register-mobile--> BoundAsMobile

Both bound states end only by logout or disconnection. All registry and
slot mutations happen between awaits, so on a single event loop each
lookup-and-bind or lookup-and-delete is atomic.
"""

import asyncio
import logging
from typing import Callable, Optional

from pairlink.connection import Connection, Role
from pairlink.errors import ProtocolError, RegistryFullError
from pairlink.message import Envelope, MessageType
from pairlink.message_dispatcher import MessageDispatcher
from pairlink.pairing.qr_generator import QrGenerator, connect_uri, png_data_url
from pairlink.relay import MessageRelay
from pairlink.session_registry import Session, SessionRegistry

logger = logging.getLogger(__name__)

JOIN_ERROR_MESSAGE = "Invalid code or code already in use by another session."
REGISTRY_FULL_MESSAGE = "No pairing code available, try again later."

# Encodes text into PNG bytes
Encoder = Callable[[str], bytes]


class PairingHandler:
    """Per-connection pairing state machine.

    Usage:
        handler = PairingHandler(registry, MessageRelay(registry))

        # For every text frame:
        await handler.handle_message(connection, frame)

        # When the socket closes for any reason:
        await handler.handle_disconnect(connection)

        await handler.close()
    """

    def __init__(
        self,
        registry: SessionRegistry,
        relay: MessageRelay,
        encoder: Optional[Encoder] = None,
        logout_grace: float = 0.4,
        handler_timeout: float = 10.0,
    ):
        """Initialize the handler.

        Args:
            registry: Session registry shared with the relay.
            relay: Relay used for "message" envelopes.
            encoder: Turns the connect URI into PNG bytes. Defaults to QrGenerator.
            logout_grace: Seconds between notifying the peer of a logout
                and closing the sockets.
            handler_timeout: Maximum time for one message handler.
        """
        self._registry = registry
        self._relay = relay
        self._encode = encoder or QrGenerator().to_png
        self._logout_grace = logout_grace
        self._teardown_tasks: set[asyncio.Task] = set()

        self._dispatcher = MessageDispatcher(handler_timeout=handler_timeout)
        self._dispatcher.register(MessageType.PING, self._handle_ping)
        self._dispatcher.register(MessageType.REGISTER_PC, self._handle_register_pc)
        self._dispatcher.register(MessageType.REGISTER_MOBILE, self._handle_register_mobile)
        self._dispatcher.register(MessageType.MESSAGE, self._handle_relay_message)
        self._dispatcher.register(MessageType.LOGOUT, self._handle_logout)

    async def handle_message(self, connection: Connection, raw: str | bytes) -> None:
        """Decode one inbound frame and dispatch it.

        Malformed frames and unknown types are dropped without a reply.
        """
        try:
            envelope = Envelope.from_json(raw)
        except ProtocolError as e:
            logger.debug(f"Dropped malformed frame from {connection.connection_id}: {e}")
            return

        await self._dispatcher.dispatch(connection, envelope)

    # =========================================================================
    # Message handlers
    # =========================================================================

    async def _handle_ping(self, connection: Connection, envelope: Envelope) -> None:
        await connection.send(Envelope.pong())

    async def _handle_register_pc(self, connection: Connection, envelope: Envelope) -> None:
        if connection.is_bound:
            logger.debug(
                f"Ignored register-pc from bound connection {connection.connection_id}"
            )
            return

        try:
            session = self._registry.create()
        except RegistryFullError as e:
            logger.error(f"Cannot register PC: {e}")
            await connection.send(Envelope.error(REGISTRY_FULL_MESSAGE))
            return

        # The code is reserved but not joinable (no pc) until encoding is done
        try:
            png = await asyncio.to_thread(self._encode, connect_uri(session.code))
        except BaseException:
            self._remove_session(session)
            raise

        if not connection.is_open:
            self._remove_session(session)
            return

        session.pc = connection
        connection.bind(Role.PC, session.code)
        await connection.send(Envelope.registered(session.code, png_data_url(png)))
        logger.info(f"PC registered with code {session.code}")

    async def _handle_register_mobile(
        self, connection: Connection, envelope: Envelope
    ) -> None:
        if connection.is_bound:
            logger.debug(
                f"Ignored register-mobile from bound connection {connection.connection_id}"
            )
            return

        code = envelope.get("code")
        if isinstance(code, int) and not isinstance(code, bool):
            code = str(code)

        session = self._registry.get(code) if isinstance(code, str) else None
        if session is None or session.closing or not session.can_join():
            logger.info(f"Mobile join rejected for code {code!r}")
            await connection.send(Envelope.error(JOIN_ERROR_MESSAGE))
            return

        session.mobile = connection
        connection.bind(Role.MOBILE, session.code)
        pc = session.pc

        await pc.send(Envelope.peer_connected())
        await connection.send(Envelope.connected())
        logger.info(f"Mobile joined session {session.code}")

    async def _handle_relay_message(
        self, connection: Connection, envelope: Envelope
    ) -> None:
        if not connection.is_bound:
            return

        await self._relay.relay(
            connection,
            content=envelope.get("content"),
            file=envelope.get("file"),
            filename=envelope.get("filename"),
        )

    async def _handle_logout(self, connection: Connection, envelope: Envelope) -> None:
        session = self._session_of(connection)
        if session is None or session.closing:
            return

        session.closing = True
        for member in list(session.members()):
            if member is not connection and member.is_open:
                await member.send(Envelope.logout())

        task = asyncio.create_task(
            self._close_after_grace(session, connection.role)
        )
        self._teardown_tasks.add(task)
        task.add_done_callback(self._teardown_tasks.discard)

    # =========================================================================
    # Teardown
    # =========================================================================

    async def _close_after_grace(self, session: Session, initiator: Role) -> None:
        """Delete the session and close its sockets once the grace delay ends.

        Safe to run after a disconnect already tore the session down.
        """
        await asyncio.sleep(self._logout_grace)

        self._remove_session(session)
        for member in list(session.members()):
            if member.is_open:
                await member.close()

        logger.info(f"Session {session.code} closed by {initiator.value}")

    async def handle_disconnect(self, connection: Connection) -> None:
        """Tear down the session of a connection that closed.

        The peer gets a logout notice (unless one was already sent) and is
        closed right away.
        """
        session = self._session_of(connection)
        if session is None:
            return

        self._remove_session(session)

        peer = session.peer_of(connection)
        if peer is not None and peer.is_open:
            if not session.closing:
                await peer.send(Envelope.logout())
            await peer.close()

        logger.info(
            f"Session {session.code} removed after {connection.role.value} disconnected"
        )

    def _session_of(self, connection: Connection) -> Optional[Session]:
        """Session the connection is currently a member of, if any."""
        if connection.session_code is None:
            return None
        session = self._registry.get(connection.session_code)
        if session is None or not session.has_member(connection):
            return None
        return session

    def _remove_session(self, session: Session) -> None:
        # A newer session may have reused the code
        if self._registry.get(session.code) is session:
            self._registry.delete(session.code)

    async def close(self) -> None:
        """Cancel pending logout teardowns."""
        tasks = list(self._teardown_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._teardown_tasks.clear()
