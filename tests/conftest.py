"""Pytest configuration and shared fixtures."""

import pytest

from pairlink.connection import Connection
from pairlink.relay import MessageRelay
from pairlink.session_registry import SessionRegistry
from tests.mocks import MockWebSocket


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from pairlink.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def registry():
    """Empty session registry."""
    return SessionRegistry()


@pytest.fixture
def relay(registry):
    """Message relay over the shared registry."""
    return MessageRelay(registry)


@pytest.fixture
def make_connection():
    """Factory for connections backed by a MockWebSocket."""

    def _make(connection_id: str | None = None) -> Connection:
        return Connection(MockWebSocket(), connection_id=connection_id)

    return _make
