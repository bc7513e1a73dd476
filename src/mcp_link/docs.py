"""OpenAPI document and Swagger UI pages."""

from pathlib import Path

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from .config import OPENAPI_ROUTE, SWAGGER_PATH

SWAGGER_REDIRECT = f"{SWAGGER_PATH}?url={OPENAPI_ROUTE}"

SWAGGER_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>MCP Link Calculator API - Swagger UI</title>
    <link rel="stylesheet" type="text/css" href="https://unpkg.com/swagger-ui-dist@5.11.0/swagger-ui.css">
    <style>
        html {
            box-sizing: border-box;
            overflow: -moz-scrollbars-vertical;
            overflow-y: scroll;
        }
        *, *:before, *:after {
            box-sizing: inherit;
        }
        body {
            margin: 0;
            background: #fafafa;
        }
        .topbar {
            background-color: #1a1a1a;
            padding: 10px 20px;
        }
        .topbar .title {
            color: white;
            font-size: 18px;
            font-weight: bold;
        }
        .topbar .subtitle {
            color: #ccc;
            font-size: 14px;
            margin-top: 5px;
        }
    </style>
</head>
<body>
    <div class="topbar">
        <div class="title">MCP Link Calculator API</div>
        <div class="subtitle">Calculator tool API reference</div>
    </div>
    <div id="swagger-ui"></div>
    <script src="https://unpkg.com/swagger-ui-dist@5.11.0/swagger-ui-bundle.js"></script>
    <script src="https://unpkg.com/swagger-ui-dist@5.11.0/swagger-ui-standalone-preset.js"></script>
    <script>
        window.onload = function() {
            const urlParams = new URLSearchParams(window.location.search);
            const specUrl = urlParams.get('url') || '/openapi.yaml';

            window.ui = SwaggerUIBundle({
                url: specUrl,
                dom_id: '#swagger-ui',
                deepLinking: true,
                presets: [
                    SwaggerUIBundle.presets.apis,
                    SwaggerUIStandalonePreset
                ],
                plugins: [
                    SwaggerUIBundle.plugins.DownloadUrl
                ],
                layout: "StandaloneLayout",
                validatorUrl: null,
                defaultModelsExpandDepth: -1,
                defaultModelExpandDepth: -1,
                displayRequestDuration: true,
                docExpansion: "none",
                filter: true,
                showExtensions: true,
                showCommonExtensions: true,
                supportedSubmitMethods: ['get', 'post', 'put', 'delete', 'patch'],
                persistAuthorization: false,
                tryItOutEnabled: true
            });
        };
    </script>
</body>
</html>
"""

_ALLOW_ANY_ORIGIN = {"Access-Control-Allow-Origin": "*"}


async def openapi_spec(request: Request) -> Response:
    """Serve the OpenAPI file verbatim. It is re-read on every request."""
    path = Path(request.app.state.openapi_path)
    try:
        content = await run_in_threadpool(path.read_bytes)
    except OSError:
        return PlainTextResponse("OpenAPI specification file not found", status_code=404)

    return Response(content, media_type="text/yaml", headers=_ALLOW_ANY_ORIGIN)


async def swagger_ui(request: Request) -> Response:
    # Bare root goes to the viewer pointed at the served OpenAPI document
    if request.url.path == "/" and not request.url.query:
        return RedirectResponse(url=SWAGGER_REDIRECT, status_code=302)

    return HTMLResponse(SWAGGER_HTML, headers=_ALLOW_ANY_ORIGIN)
