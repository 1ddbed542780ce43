"""JSON message envelopes exchanged over the pairing WebSocket.

Every frame is a JSON object with a ``type`` field; the remaining keys are
the type-specific payload. Inbound frames that are not such an object raise
``ProtocolError`` and are dropped by the caller.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pairlink.errors import ProtocolError

__all__ = [
    "Envelope",
    "MessageType",
    "ProtocolError",
]


def _or_null(value: Any) -> Any:
    # null for the values a browser client treats as false; NaN != NaN
    if value is None or value is False or value == "":
        return None
    if isinstance(value, (int, float)) and (value == 0 or value != value):
        return None
    return value


class MessageType(str, Enum):
    """Envelope ``type`` values, inbound and outbound."""

    PING = "ping"
    PONG = "pong"
    REGISTER_PC = "register-pc"
    REGISTERED = "registered"
    REGISTER_MOBILE = "register-mobile"
    CONNECTED = "connected"
    PEER_CONNECTED = "peer-connected"
    MESSAGE = "message"
    LOGOUT = "logout"
    ERROR = "error"


@dataclass
class Envelope:
    """A typed message.

    Attributes:
        type: Message type identifier (e.g., "register-pc").
        payload: Every other key of the JSON object.
    """

    type: str
    payload: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a payload field."""
        return self.payload.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat dict for JSON serialization."""
        msg_type = self.type.value if isinstance(self.type, MessageType) else self.type
        return {"type": msg_type, **self.payload}

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Envelope":
        """Parse an inbound frame.

        Raises:
            ProtocolError: If the frame is not a JSON object with a string type.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ProtocolError(f"Expected JSON object, got {type(data).__name__}")

        msg_type = data.pop("type", None)
        if not isinstance(msg_type, str):
            raise ProtocolError("Missing or non-string message type")

        return cls(type=msg_type, payload=data)

    # Outbound constructors

    @classmethod
    def pong(cls) -> "Envelope":
        return cls(MessageType.PONG)

    @classmethod
    def registered(cls, code: str, qr: str) -> "Envelope":
        return cls(MessageType.REGISTERED, {"code": code, "qr": qr})

    @classmethod
    def connected(cls) -> "Envelope":
        return cls(MessageType.CONNECTED)

    @classmethod
    def peer_connected(cls) -> "Envelope":
        return cls(MessageType.PEER_CONNECTED)

    @classmethod
    def logout(cls) -> "Envelope":
        return cls(MessageType.LOGOUT)

    @classmethod
    def error(cls, message: str) -> "Envelope":
        return cls(MessageType.ERROR, {"message": message})

    @classmethod
    def relayed(
        cls,
        sender_role: str,
        content: Any = None,
        file: Any = None,
        filename: Any = None,
    ) -> "Envelope":
        """Build the message delivered to a peer.

        Missing, empty-string, zero and false fields are sent as null.
        Empty lists and objects pass through unchanged.
        """
        return cls(
            MessageType.MESSAGE,
            {
                "from": sender_role,
                "content": _or_null(content),
                "file": _or_null(file),
                "filename": _or_null(filename),
            },
        )
