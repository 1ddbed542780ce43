"""Tests for Connection."""

import pytest
from aiohttp import WSCloseCode

from pairlink.connection import Connection, Role
from pairlink.errors import PairingError
from pairlink.message import Envelope
from tests.mocks import MockTransport, MockWebSocket


class TestConnectionBinding:
    """Test role binding."""

    def test_new_connection_is_unbound_and_alive(self):
        """Fresh connection has no role, no session and is alive."""
        conn = Connection(MockWebSocket())

        assert conn.role is Role.UNBOUND
        assert conn.session_code is None
        assert not conn.is_bound
        assert conn.alive
        assert conn.is_open

    def test_bind(self):
        """bind() assigns role and session code."""
        conn = Connection(MockWebSocket())

        conn.bind(Role.PC, "482913")

        assert conn.role is Role.PC
        assert conn.session_code == "482913"
        assert conn.is_bound

    def test_bind_twice_raises(self):
        """A connection is bound at most once."""
        conn = Connection(MockWebSocket())
        conn.bind(Role.PC, "482913")

        with pytest.raises(PairingError):
            conn.bind(Role.MOBILE, "111111")

        assert conn.role is Role.PC
        assert conn.session_code == "482913"

    def test_bind_unbound_role_raises(self):
        """Binding to the unbound role is rejected."""
        conn = Connection(MockWebSocket())

        with pytest.raises(PairingError):
            conn.bind(Role.UNBOUND, "482913")

    def test_connection_ids_are_unique(self):
        """Generated connection ids differ."""
        ids = {Connection(MockWebSocket()).connection_id for _ in range(100)}
        assert len(ids) == 100


class TestConnectionIO:
    """Test send, ping and close."""

    @pytest.mark.asyncio
    async def test_send_writes_json(self):
        """send() writes the envelope as JSON text."""
        ws = MockWebSocket()
        conn = Connection(ws)

        assert await conn.send(Envelope.pong()) is True

        assert ws.messages() == [{"type": "pong"}]

    @pytest.mark.asyncio
    async def test_send_on_closed_socket_returns_false(self):
        """send() on a closed socket does nothing."""
        ws = MockWebSocket()
        conn = Connection(ws)
        await conn.close()

        assert await conn.send(Envelope.pong()) is False
        assert ws.sent == []

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self, caplog):
        """A write error is logged and reported as False."""
        ws = MockWebSocket()
        conn = Connection(ws, connection_id="abcd1234")

        async def fail(data):
            raise ConnectionResetError("Cannot write to closing transport")

        ws.send_str = fail

        assert await conn.send(Envelope.pong()) is False
        assert "Send to abcd1234 failed" in caplog.text

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        """Closing twice closes the socket once."""
        ws = MockWebSocket()
        conn = Connection(ws)

        await conn.close()
        await conn.close()

        assert ws.closed
        assert ws.close_code == WSCloseCode.OK
        assert not conn.is_open

    @pytest.mark.asyncio
    async def test_ping(self):
        """ping() sends a transport ping."""
        ws = MockWebSocket()
        conn = Connection(ws)

        await conn.ping()

        assert ws.pings == 1

    def test_mark_alive(self):
        """mark_alive() sets the alive flag."""
        conn = Connection(MockWebSocket())
        conn.alive = False

        conn.mark_alive()

        assert conn.alive


class TestConnectionTerminate:
    """Test terminate()."""

    @pytest.mark.asyncio
    async def test_terminate_aborts_transport(self):
        """terminate() aborts the transport without a handshake."""
        ws = MockWebSocket()
        transport = MockTransport()
        conn = Connection(ws, transport=transport)

        await conn.terminate()

        assert transport.aborted
        assert not ws.closed

    @pytest.mark.asyncio
    async def test_terminate_without_transport_closes_socket(self):
        """Without a transport, terminate() falls back to close()."""
        ws = MockWebSocket()
        conn = Connection(ws)

        await conn.terminate()

        assert ws.closed
        assert ws.close_code == WSCloseCode.GOING_AWAY
