"""Permissive CORS wrapper for ASGI applications."""

from starlette.datastructures import MutableHeaders
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


class CORSHandler:
    """Adds the CORS headers to every response and answers preflights itself.

    ``OPTIONS`` requests get an empty 200 and never reach the wrapped app.
    The headers are attached to whatever response start the wrapped app sends,
    error responses included.
    If the wrapped app raises before starting a response, a 500 carrying the
    headers is sent before the exception propagates.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            response = Response(status_code=200, headers=CORS_HEADERS)
            await response(scope, receive, send)
            return

        started = False

        async def send_with_cors(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
                headers = MutableHeaders(scope=message)
                for name, value in CORS_HEADERS.items():
                    headers[name] = value
            await send(message)

        try:
            await self.app(scope, receive, send_with_cors)
        except Exception:
            if not started:
                response = PlainTextResponse("Internal Server Error", status_code=500, headers=CORS_HEADERS)
                await response(scope, receive, send)
            raise


def cors(app: ASGIApp) -> CORSHandler:
    return CORSHandler(app)
