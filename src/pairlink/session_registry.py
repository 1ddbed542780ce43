"""Registry of live pairing sessions, keyed by pairing code."""

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from pairlink.connection import Connection
from pairlink.errors import RegistryFullError

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Generate a random 6-digit pairing code without a leading zero."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass
class Session:
    """A pairing between one PC and at most one mobile connection.

    Attributes:
        code: 6-digit pairing code, the registry key.
        pc: Connection registered as PC.
        mobile: Connection joined as mobile.
        closing: True once a logout teardown is scheduled.
        created_at: Unix timestamp when the session was created.
    """

    code: str
    pc: Optional[Connection] = None
    mobile: Optional[Connection] = None
    closing: bool = False
    created_at: float = field(default_factory=time.time)

    def can_join(self) -> bool:
        """Whether a mobile may bind to this session now."""
        return self.pc is not None and self.mobile is None

    def has_member(self, connection: Connection) -> bool:
        return connection is self.pc or connection is self.mobile

    def peer_of(self, connection: Connection) -> Optional[Connection]:
        """Return the other member of the session, if any."""
        if connection is self.pc:
            return self.mobile
        if connection is self.mobile:
            return self.pc
        return None

    def members(self) -> Iterator[Connection]:
        """Iterate over bound connections."""
        for member in (self.pc, self.mobile):
            if member is not None:
                yield member


class SessionRegistry:
    """Store of live sessions.

    Only creation, lookup and deletion happen here. Session fields are
    changed by the pairing handler.
    """

    def __init__(
        self,
        code_generator: Callable[[], str] = generate_code,
        max_attempts: int = 100,
    ):
        """Initialize empty registry.

        Args:
            code_generator: Returns candidate pairing codes.
            max_attempts: Candidates tried before giving up on create().
        """
        self._sessions: dict[str, Session] = {}
        self._generate_code = code_generator
        self._max_attempts = max_attempts

    def create(self) -> Session:
        """Create a session under a code no live session uses.

        Returns:
            The new session, with empty pc and mobile slots.

        Raises:
            RegistryFullError: If no free code was found.
        """
        for _ in range(self._max_attempts):
            code = self._generate_code()
            if code not in self._sessions:
                session = Session(code=code)
                self._sessions[code] = session
                return session
            logger.debug(f"Pairing code collision on {code}, retrying")

        raise RegistryFullError(
            f"No free pairing code after {self._max_attempts} attempts "
            f"({len(self._sessions)} live sessions)"
        )

    def get(self, code: str) -> Optional[Session]:
        """Get session by code.

        Returns:
            Session if found, None otherwise.
        """
        return self._sessions.get(code)

    def delete(self, code: str) -> Optional[Session]:
        """Remove and return session by code. No-op if absent."""
        return self._sessions.pop(code, None)

    def list_all(self) -> list[Session]:
        """Get list of all sessions."""
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: str) -> bool:
        return code in self._sessions
