from starlette.applications import Starlette
from starlette.routing import Route

from . import docs
from .calculator import CalculatorEndpoint
from .config import CALCULATOR_PATH, OPENAPI_PATH, OPENAPI_ROUTE, SWAGGER_PATH
from .cors import cors
from .transport import SseTransport


def build_app(transport: SseTransport, openapi_path: str = OPENAPI_PATH) -> Starlette:
    """Assemble the gateway routes. Paths are matched literally; anything else is a 404."""
    transport_app = cors(transport)

    # /calculator responses carry no CORS headers
    app = Starlette(
        routes=[
            Route(transport.sse_path, transport_app),
            Route(transport.message_path, transport_app),
            Route(CALCULATOR_PATH, CalculatorEndpoint),
            Route(OPENAPI_ROUTE, docs.openapi_spec),
            Route(SWAGGER_PATH, docs.swagger_ui),
            Route("/", docs.swagger_ui),
        ],
    )
    app.state.openapi_path = openapi_path
    return app
