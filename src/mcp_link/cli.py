"""
Command-line interface for MCP Link.

    mcp-link serve --host 0.0.0.0 --port 8080
"""

import asyncio
import logging

import typer

from .config import DEFAULT_HOST, DEFAULT_PORT, OPENAPI_PATH, SHUTDOWN_TIMEOUT

logger = logging.getLogger("mcp-link")

app = typer.Typer(
    name="mcp-link",
    help="Convert OpenAPI to MCP compatible endpoints",
    add_completion=False,
)


@app.callback()
def callback():
    """MCP Link - calculator tool and MCP SSE transport behind one HTTP server."""


@app.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, "--host", "-H", help="Host to listen on"),
    port: int = typer.Option(DEFAULT_PORT, "--port", "-p", help="Port to listen on"),
    openapi_path: str = typer.Option(OPENAPI_PATH, "--openapi", help="OpenAPI file served at /openapi.yaml"),
    shutdown_timeout: float = typer.Option(
        SHUTDOWN_TIMEOUT, "--shutdown-timeout", help="Seconds allowed for graceful shutdown"
    ),
):
    """Start the MCP Link server."""
    from .server import GatewayError, serve as run_gateway

    try:
        asyncio.run(run_gateway(host, port, openapi_path, shutdown_timeout))
    except GatewayError as e:
        logger.critical(str(e))
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
