"""Forward application messages between the two members of a session."""

import logging
from typing import Any

from pairlink.connection import Connection
from pairlink.message import Envelope
from pairlink.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class MessageRelay:
    """Best-effort, single-attempt forwarding to the paired peer.

    The peer is looked up by session code on every call, so a connection
    that has since closed or left is never written to.
    """

    def __init__(self, registry: SessionRegistry):
        self._registry = registry

    async def relay(
        self,
        sender: Connection,
        content: Any = None,
        file: Any = None,
        filename: Any = None,
    ) -> bool:
        """Deliver a message from ``sender`` to its peer.

        Returns:
            True if the peer was written to, False if the message was dropped.
        """
        if sender.session_code is None:
            return False

        session = self._registry.get(sender.session_code)
        if session is None:
            return False

        peer = session.peer_of(sender)
        if peer is None or not peer.is_open:
            logger.debug(f"[{session.code}] No open peer for {sender.role.value}, dropped")
            return False

        delivered = await peer.send(
            Envelope.relayed(sender.role.value, content, file, filename)
        )
        if delivered:
            logger.debug(f"[{session.code}] Relayed message from {sender.role.value}")
        return delivered
