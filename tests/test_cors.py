import unittest

import httpx
from starlette.responses import JSONResponse, PlainTextResponse

from mcp_link.cors import CORS_HEADERS, cors


class RecordingApp:
    """ASGI app that records calls and answers with a fixed response."""

    def __init__(self, response):
        self.response = response
        self.calls = 0

    async def __call__(self, scope, receive, send):
        self.calls += 1
        await self.response(scope, receive, send)


def _client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class TestCORSHandler(unittest.IsolatedAsyncioTestCase):
    def assertHasCORS(self, response):
        for name, value in CORS_HEADERS.items():
            self.assertEqual(response.headers[name], value)

    async def test_preflight_short_circuits(self):
        inner = RecordingApp(PlainTextResponse("should not run"))
        async with _client(cors(inner)) as client:
            response = await client.options("/anything")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"")
        self.assertHasCORS(response)
        self.assertEqual(inner.calls, 0)

    async def test_delegates_other_methods(self):
        inner = RecordingApp(JSONResponse({"ok": True}))
        async with _client(cors(inner)) as client:
            response = await client.post("/anything", json={})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True})
        self.assertHasCORS(response)
        self.assertEqual(inner.calls, 1)

    async def test_headers_on_error_responses(self):
        inner = RecordingApp(PlainTextResponse("nope", status_code=500))
        async with _client(cors(inner)) as client:
            response = await client.get("/anything")

        self.assertEqual(response.status_code, 500)
        self.assertHasCORS(response)

    async def test_overrides_downstream_values(self):
        inner = RecordingApp(
            PlainTextResponse("x", headers={"Access-Control-Allow-Origin": "https://example.com"})
        )
        async with _client(cors(inner)) as client:
            response = await client.get("/anything")

        self.assertEqual(response.headers.get_list("access-control-allow-origin"), ["*"])

    async def test_headers_when_wrapped_app_raises_before_responding(self):
        async def failing(scope, receive, send):
            raise RuntimeError("transport exploded")

        transport = httpx.ASGITransport(app=cors(failing), raise_app_exceptions=False)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/anything", json={})

        self.assertEqual(response.status_code, 500)
        self.assertHasCORS(response)

    async def test_exception_still_propagates(self):
        async def failing(scope, receive, send):
            raise RuntimeError("transport exploded")

        async with _client(cors(failing)) as client:
            with self.assertRaises(RuntimeError):
                await client.get("/anything")

    async def test_non_http_scopes_pass_through(self):
        seen = []

        async def inner(scope, receive, send):
            seen.append(scope["type"])

        await cors(inner)({"type": "lifespan"}, None, None)
        self.assertEqual(seen, ["lifespan"])


if __name__ == "__main__":
    unittest.main()
