import os


def _env_truthy(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


# Server defaults (overridable per run via the `serve` options)
DEFAULT_HOST = os.getenv("MCP_LINK_HOST", "localhost")
DEFAULT_PORT = int(os.getenv("MCP_LINK_PORT", "8080"))

# Shared budget for draining both lifecycles once a stop signal arrives
SHUTDOWN_TIMEOUT = float(os.getenv("MCP_LINK_SHUTDOWN_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("MCP_LINK_LOG_LEVEL", "INFO").upper()

OPENAPI_PATH = os.getenv("MCP_LINK_OPENAPI_PATH", "openapi.yaml")

DNS_REBINDING_PROTECTION = _env_truthy("MCP_LINK_DNS_REBINDING_PROTECTION", default=False)

# Routes
SSE_PATH = "/sse"
MESSAGE_PATH = "/message"
CALCULATOR_PATH = "/calculator"
OPENAPI_ROUTE = "/openapi.yaml"
SWAGGER_PATH = "/swagger"
