"""Route decoded envelopes to per-type handlers."""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from pairlink.connection import Connection
from pairlink.message import Envelope

logger = logging.getLogger(__name__)

# Called as handler(connection, envelope); may be sync or async
Handler = Callable[[Connection, Envelope], Union[Awaitable[None], None]]


def _type_key(message_type: Union[str, Enum]) -> str:
    return message_type.value if isinstance(message_type, Enum) else message_type


class MessageDispatcher:
    """Calls the handler registered for an envelope's ``type``.

    A type with no handler is logged at debug and dropped. Handler
    failures and timeouts are logged and do not propagate, so one bad
    frame never ends the connection it arrived on.
    """

    def __init__(self, handler_timeout: float = 10.0):
        self._handlers: dict[str, Handler] = {}
        self._handler_timeout = handler_timeout

    def register(self, message_type: Union[str, Enum], handler: Handler) -> None:
        """Register ``handler`` for ``message_type``, replacing any previous one."""
        key = _type_key(message_type)
        self._handlers[key] = handler
        logger.debug(f"Registered handler for: {key}")

    def has_handler(self, message_type: Union[str, Enum]) -> bool:
        return _type_key(message_type) in self._handlers

    def get_registered_types(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, connection: Connection, envelope: Envelope) -> None:
        handler = self._handlers.get(envelope.type)
        if handler is None:
            logger.debug(
                f"Dropped unknown message type from {connection.connection_id}: "
                f"{envelope.type!r}"
            )
            return

        try:
            await self._run(handler, connection, envelope)
        except asyncio.TimeoutError:
            logger.error(
                f"Handler timeout for {envelope.type} "
                f"(connection={connection.connection_id}, timeout={self._handler_timeout}s)"
            )
        except Exception as e:
            logger.error(
                f"Handler error for {envelope.type} "
                f"(connection={connection.connection_id}): {e}"
            )

    async def _run(self, handler: Handler, connection: Connection, envelope: Envelope) -> Any:
        if not inspect.iscoroutinefunction(handler):
            return handler(connection, envelope)
        return await asyncio.wait_for(
            handler(connection, envelope), timeout=self._handler_timeout
        )
