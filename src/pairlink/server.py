"""HTTP and WebSocket server for pairlink.

Single aiohttp server handling all routes:
- / - WebSocket upgrade for pairing clients, otherwise the index page
- /ws - WebSocket upgrade for pairing clients
- /health - Health check
- everything else - static assets from ``static_dir`` (if configured)
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from aiohttp import WSMsgType, web

from pairlink.config import Config
from pairlink.connection import Connection
from pairlink.connection_manager import ConnectionManager
from pairlink.liveness import LivenessMonitor
from pairlink.pairing.handler import Encoder, PairingHandler
from pairlink.relay import MessageRelay
from pairlink.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class RelayServer:
    """Pairing and relay server.

    Owns the session registry, the set of open connections, the pairing
    handler and the liveness monitor. The monitor starts with the
    application and stops on cleanup, so it also runs under aiohttp's
    test client.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        registry: Optional[SessionRegistry] = None,
        encoder: Optional[Encoder] = None,
    ):
        """Initialize server.

        Args:
            config: Server configuration. Defaults to Config().
            registry: Optional injected session registry (for testing).
            encoder: Optional injected QR encoder (for testing).
        """
        self._config = config if config is not None else Config()
        # An empty registry is falsy
        self.registry = registry if registry is not None else SessionRegistry()
        self.connections = ConnectionManager()
        self.relay = MessageRelay(self.registry)
        self.handler = PairingHandler(
            self.registry,
            self.relay,
            encoder=encoder,
            logout_grace=self._config.pairing.logout_grace,
            handler_timeout=self._config.pairing.handler_timeout,
        )
        self.liveness = LivenessMonitor(self.connections, self._config.liveness)

        self.app = web.Application()
        self.app.on_startup.append(self._on_startup)
        self.app.on_shutdown.append(self._on_shutdown)
        self.app.on_cleanup.append(self._on_cleanup)
        self._setup_routes()

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._port: int = 0
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def config(self) -> Config:
        return self._config

    def _setup_routes(self) -> None:
        """Set up all HTTP routes."""
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/ws", self._handle_websocket)
        self.app.router.add_get("/", self._handle_root)

        static_dir = self._static_dir()
        if static_dir is not None:
            self.app.router.add_static("/", static_dir, show_index=False)

    def _static_dir(self) -> Optional[Path]:
        if not self._config.static_dir:
            return None
        path = Path(self._config.static_dir).expanduser()
        if not path.is_dir():
            logger.warning(f"Static directory not found, not serving assets: {path}")
            return None
        return path

    # =========================================================================
    # Application lifecycle
    # =========================================================================

    async def _on_startup(self, app: web.Application) -> None:
        if self._config.liveness.enabled:
            await self.liveness.start()

    async def _on_shutdown(self, app: web.Application) -> None:
        await self.connections.close_all()

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.liveness.stop()
        await self.handler.close()

    # =========================================================================
    # HTTP
    # =========================================================================

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "ok",
            "sessions": len(self.registry),
            "connections": len(self.connections),
        })

    async def _handle_root(self, request: web.Request) -> web.StreamResponse:
        """Serve WebSocket upgrades and the index page on the same path."""
        if web.WebSocketResponse().can_prepare(request).ok:
            return await self._handle_websocket(request)

        static_dir = self._static_dir()
        if static_dir is None or not (static_dir / "index.html").is_file():
            raise web.HTTPNotFound()

        response = web.FileResponse(static_dir / "index.html")
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        return response

    # =========================================================================
    # WebSocket
    # =========================================================================

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Run one client connection until it closes.

        Autoping is off so the handler sees transport pongs (liveness) and
        answers client pings itself.
        """
        ws = web.WebSocketResponse(
            autoping=False,
            max_msg_size=self._config.max_message_size,
        )
        await ws.prepare(request)

        connection = Connection(ws, transport=request.transport)
        self.connections.add(connection)
        logger.debug(f"WebSocket connected: {connection.connection_id} from {request.remote}")

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self.handler.handle_message(connection, msg.data)
                elif msg.type == WSMsgType.PING:
                    await ws.pong(msg.data)
                elif msg.type == WSMsgType.PONG:
                    connection.mark_alive()
                elif msg.type == WSMsgType.ERROR:
                    logger.warning(
                        f"WebSocket error on {connection.connection_id}: {ws.exception()}"
                    )
                    break
                # Binary frames are not part of the protocol
        finally:
            self.connections.remove(connection)
            await self.handler.handle_disconnect(connection)
            logger.debug(f"WebSocket closed: {connection.connection_id}")

        return ws

    # =========================================================================
    # Server lifecycle
    # =========================================================================

    async def start(self, host: Optional[str] = None, port: Optional[int] = None) -> web.AppRunner:
        """Start the server.

        Args:
            host: Host to bind to. Defaults to config.bind_address.
            port: Port to bind to (0 for random). Defaults to config.port.

        Returns:
            App runner for cleanup.
        """
        host = host if host is not None else self._config.bind_address
        port = port if port is not None else self._config.port

        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        # Get actual port
        if self._site._server and self._site._server.sockets:
            self._port = self._site._server.sockets[0].getsockname()[1]
        else:
            self._port = port

        logger.info(f"Server listening on {host}:{self._port}")
        return self._runner

    def get_port(self) -> int:
        """Get the actual bound port."""
        return self._port

    async def run_forever(self) -> None:
        """Run until SIGINT/SIGTERM or stop(), then shut down."""
        if self._runner is None:
            await self.start()

        self._stop_event = asyncio.Event()
        self._setup_signals()
        try:
            await self._stop_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self.close()

    def stop(self) -> None:
        """Ask run_forever() to return."""
        if self._stop_event is not None:
            self._stop_event.set()

    def _setup_signals(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.stop)

    async def close(self) -> None:
        """Close all connections and stop server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None

        logger.info("Server closed")
