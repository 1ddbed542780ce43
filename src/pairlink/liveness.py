"""
Liveness monitor for client WebSockets.

Every cycle each open connection is either evicted or probed:
- A connection whose ``alive`` flag is still False did not answer the
  previous probe and is terminated, which runs the normal disconnect
  teardown for its session.
- Otherwise the flag is cleared and a WebSocket ping is sent; the pong
  sets it again before the next cycle.

A dead connection is therefore evicted between one and two intervals
after it stopped answering.
"""

import asyncio
import logging
from typing import Optional

from pairlink.config import LivenessConfig
from pairlink.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """Periodic probe-and-evict loop over all open connections.

    Usage:
        monitor = LivenessMonitor(connections, LivenessConfig(interval=15.0))
        await monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(self, connections: ConnectionManager, config: LivenessConfig):
        """Initialize the monitor.

        Args:
            connections: Open connections to supervise.
            config: Liveness configuration.
        """
        self._connections = connections
        self._config = config
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def config(self) -> LivenessConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the probe loop. No-op if already running."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._liveness_loop())
        logger.info(f"LivenessMonitor started (interval={self._config.interval}s)")

    async def stop(self) -> None:
        """Stop the probe loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("LivenessMonitor stopped")

    async def _liveness_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._config.interval)
                await self.run_cycle()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Liveness loop error: {e}")

    async def run_cycle(self) -> None:
        """Evict connections that missed the last probe, probe the rest."""
        for connection in self._connections:
            if not connection.is_open:
                continue

            if not connection.alive:
                logger.warning(
                    f"Connection {connection.connection_id} missed liveness probe, "
                    "terminating"
                )
                await connection.terminate()
                continue

            connection.alive = False
            try:
                await connection.ping()
            except ConnectionError as e:
                logger.warning(
                    f"Failed to probe {connection.connection_id}: {e}"
                )
