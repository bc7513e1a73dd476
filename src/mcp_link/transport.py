"""MCP SSE transport with an owned, drainable lifecycle.

One ASGI application serves both transport paths: ``GET /sse`` opens an event
stream and ``POST /message?session_id=...`` delivers client messages to it.
Every open stream runs inside its own cancel scope so ``shutdown()`` can end
them all and wait until they are gone.
"""

import asyncio
import logging

import anyio
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from mcp.server.transport_security import TransportSecuritySettings
from starlette.responses import PlainTextResponse
from starlette.types import Message, Receive, Scope, Send

from .config import DNS_REBINDING_PROTECTION, MESSAGE_PATH, SSE_PATH

logger = logging.getLogger("mcp-link-transport")


def default_security_settings() -> TransportSecuritySettings:
    if not DNS_REBINDING_PROTECTION:
        # Allow connections from any host (universal AI agent compatibility)
        return TransportSecuritySettings(enable_dns_rebinding_protection=False)
    return TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=["localhost:*", "127.0.0.1:*"],
        allowed_origins=["http://localhost:*", "http://127.0.0.1:*"],
    )


class SseTransport:
    def __init__(
        self,
        server: Server,
        sse_path: str = SSE_PATH,
        message_path: str = MESSAGE_PATH,
        security_settings: TransportSecuritySettings | None = None,
    ):
        self.server = server
        self.sse_path = sse_path
        self.message_path = message_path
        self._sse = SseServerTransport(
            message_path, security_settings=security_settings or default_security_settings()
        )
        self._streams: set[anyio.CancelScope] = set()
        self._drained = asyncio.Event()
        self._drained.set()
        self._closing = False

    @property
    def open_streams(self) -> int:
        return len(self._streams)

    @property
    def closing(self) -> bool:
        return self._closing

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope["path"]
        method = scope["method"]

        if path == self.sse_path:
            expected, handler = "GET", self.handle_sse
        elif path == self.message_path:
            expected, handler = "POST", self.handle_message
        else:
            await PlainTextResponse("Not Found", status_code=404)(scope, receive, send)
            return

        if method != expected:
            response = PlainTextResponse(
                "Method not allowed", status_code=405, headers={"Allow": expected}
            )
            await response(scope, receive, send)
            return

        await handler(scope, receive, send)

    async def handle_sse(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._closing:
            await PlainTextResponse("Server is shutting down", status_code=503)(scope, receive, send)
            return

        started = False
        finished = False

        async def tracked_send(message: Message) -> None:
            nonlocal started, finished
            if message["type"] == "http.response.start":
                started = True
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                finished = True
            await send(message)

        stream_scope = anyio.CancelScope()
        self._streams.add(stream_scope)
        self._drained.clear()
        logger.info(f"SSE stream opened ({len(self._streams)} open)")

        try:
            with stream_scope:
                async with self._sse.connect_sse(scope, receive, tracked_send) as (read_stream, write_stream):
                    await self.server.run(
                        read_stream, write_stream, self.server.create_initialization_options()
                    )

            if stream_scope.cancelled_caught and started and not finished:
                # Terminate the chunked body so the client sees the stream end
                await send({"type": "http.response.body", "body": b"", "more_body": False})
        finally:
            self._streams.discard(stream_scope)
            if not self._streams:
                self._drained.set()
            logger.info(f"SSE stream closed ({len(self._streams)} open)")

    async def handle_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._sse.handle_post_message(scope, receive, send)

    async def shutdown(self) -> None:
        """Refuse new streams, cancel the open ones and wait for them to finish."""
        self._closing = True
        if self._streams:
            logger.info(f"Closing {len(self._streams)} SSE stream(s)")
        for stream_scope in list(self._streams):
            stream_scope.cancel()
        await self._drained.wait()
