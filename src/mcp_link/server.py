"""Gateway process lifetime.

``Gateway`` owns the two server lifecycles of one ``serve`` run: the HTTP
request server and the SSE transport. It starts the request server, waits
for SIGINT/SIGTERM and then drains the transport followed by the request
server, both against a single shared deadline.
"""

import asyncio
import enum
import logging
import signal
import socket
from typing import Any, Protocol

import uvicorn

from .config import LOG_LEVEL, OPENAPI_PATH, SHUTDOWN_TIMEOUT
from .mcp_server import mcp
from .router import build_app
from .transport import SseTransport

# Configure Logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("mcp-link")

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class GatewayError(Exception):
    """Fatal lifecycle failure; the process exits when one escapes."""


class BindFailure(GatewayError):
    pass


class ShutdownFailure(GatewayError):
    pass


class ShutdownTimeout(ShutdownFailure):
    pass


class GatewayState(str, enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class Lifecycle(Protocol):
    async def shutdown(self) -> None: ...


class RequestServer:
    """HTTP listener backed by uvicorn, started and stopped explicitly."""

    def __init__(self, app: Any, host: str, port: int):
        self.host = host
        self.port = port
        self.config = uvicorn.Config(app, host=host, port=port, log_config=None)
        self.server = uvicorn.Server(self.config)
        self._socket: socket.socket | None = None
        self._main_loop: asyncio.Task | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Actual bound address (useful when port 0 was requested)."""
        if self._socket is None:
            return self.host, self.port
        host, port = self._socket.getsockname()[:2]
        return host, port

    async def start(self) -> None:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        try:
            self._socket = socket.create_server((self.host, self.port), family=family)
        except OSError as e:
            raise BindFailure(f"Error starting server on {self.host}:{self.port}: {e}") from e

        if not self.config.loaded:
            self.config.load()
        self.server.lifespan = self.config.lifespan_class(self.config)

        await self.server.startup(sockets=[self._socket])
        if self.server.should_exit:
            self._socket.close()
            raise GatewayError("Application startup failed")

        self._main_loop = asyncio.create_task(self.server.main_loop())

    async def shutdown(self) -> None:
        self.server.should_exit = True
        if self._main_loop is not None:
            await self._main_loop
        sockets = [self._socket] if self._socket is not None else None
        await self.server.shutdown(sockets=sockets)


class Gateway:
    def __init__(
        self,
        request_server: RequestServer,
        transport: Lifecycle,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT,
    ):
        self.request_server = request_server
        self.transport = transport
        self.shutdown_timeout = shutdown_timeout
        self.state = GatewayState.STARTING

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Serve until ``stop`` is set, or until SIGINT/SIGTERM when no event is given."""
        await self.request_server.start()
        self.state = GatewayState.RUNNING
        host, port = self.request_server.address
        logger.info(f"Starting server on {host}:{port}")

        loop = asyncio.get_running_loop()
        handle_signals = stop is None
        if stop is None:
            stop = asyncio.Event()
            for sig in STOP_SIGNALS:
                loop.add_signal_handler(sig, self._on_signal, sig, stop)

        try:
            await stop.wait()
            await self.shutdown()
        finally:
            if handle_signals:
                for sig in STOP_SIGNALS:
                    loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals, stop: asyncio.Event) -> None:
        if stop.is_set():
            logger.warning(f"Received {sig.name} again, shutdown already in progress")
            return
        logger.info(f"Received {sig.name}")
        stop.set()

    async def shutdown(self) -> None:
        self.state = GatewayState.SHUTTING_DOWN
        logger.info("Shutting down server...")
        deadline = asyncio.get_running_loop().time() + self.shutdown_timeout

        # Sequential: long-lived SSE streams first, then the request server
        await self._drain("SSE transport", self.transport, deadline)
        await self._drain("HTTP server", self.request_server, deadline)

        self.state = GatewayState.STOPPED
        logger.info("Server gracefully stopped")

    async def _drain(self, name: str, lifecycle: Lifecycle, deadline: float) -> None:
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        try:
            await asyncio.wait_for(lifecycle.shutdown(), timeout=remaining)
        except asyncio.TimeoutError as e:
            raise ShutdownTimeout(
                f"Error shutting down {name}: not drained within {self.shutdown_timeout}s"
            ) from e
        except Exception as e:
            raise ShutdownFailure(f"Error shutting down {name}: {e}") from e
        logger.info(f"{name} stopped")


async def serve(
    host: str,
    port: int,
    openapi_path: str = OPENAPI_PATH,
    shutdown_timeout: float = SHUTDOWN_TIMEOUT,
) -> Gateway:
    """Run the gateway until a stop signal arrives and both lifecycles drain."""
    transport = SseTransport(mcp._mcp_server)
    app = build_app(transport, openapi_path)
    gateway = Gateway(RequestServer(app, host, port), transport, shutdown_timeout)
    await gateway.run()
    return gateway
