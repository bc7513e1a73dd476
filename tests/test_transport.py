import asyncio
import unittest
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import anyio

from mcp_link.transport import SseTransport


class FakeServer:
    """Stands in for the MCP server: holds the stream open until cancelled."""

    def __init__(self):
        self.runs = 0

    def create_initialization_options(self):
        return None

    async def run(self, read_stream, write_stream, initialization_options):
        self.runs += 1
        await anyio.sleep_forever()


@asynccontextmanager
async def fake_connect_sse(scope, receive, send):
    await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/event-stream")]})
    await send({"type": "http.response.body", "body": b"event: endpoint\r\ndata: /message\r\n\r\n", "more_body": True})
    yield object(), object()


def _scope(path, method="GET"):
    return {"type": "http", "path": path, "method": method, "headers": [], "query_string": b""}


async def _receive():
    await anyio.sleep_forever()


class TestSseTransport(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.server = FakeServer()
        self.transport = SseTransport(self.server)
        self.sent = []

    async def send(self, message):
        self.sent.append(message)

    async def _open_stream(self, sent):
        async def send(message):
            sent.append(message)

        expected = self.server.runs + 1
        task = asyncio.create_task(self.transport(_scope("/sse"), _receive, send))
        for _ in range(100):
            if self.server.runs == expected:
                break
            await asyncio.sleep(0.01)
        return task

    async def test_shutdown_without_streams_returns_immediately(self):
        await asyncio.wait_for(self.transport.shutdown(), timeout=1)
        self.assertTrue(self.transport.closing)

    async def test_shutdown_cancels_and_terminates_open_streams(self):
        with patch.object(self.transport._sse, "connect_sse", fake_connect_sse):
            first, second = [], []
            tasks = [await self._open_stream(first), await self._open_stream(second)]
            self.assertEqual(self.transport.open_streams, 2)

            await asyncio.wait_for(self.transport.shutdown(), timeout=1)
            await asyncio.wait_for(asyncio.gather(*tasks), timeout=1)

        self.assertEqual(self.transport.open_streams, 0)
        for sent in (first, second):
            self.assertEqual(sent[0]["type"], "http.response.start")
            self.assertEqual(sent[-1], {"type": "http.response.body", "body": b"", "more_body": False})

    async def test_new_streams_refused_while_closing(self):
        await self.transport.shutdown()

        await self.transport(_scope("/sse"), _receive, self.send)

        self.assertEqual(self.sent[0]["status"], 503)
        self.assertEqual(self.server.runs, 0)

    async def test_unknown_path(self):
        await self.transport(_scope("/elsewhere"), _receive, self.send)
        self.assertEqual(self.sent[0]["status"], 404)

    async def test_wrong_methods(self):
        await self.transport(_scope("/sse", method="POST"), _receive, self.send)
        await self.transport(_scope("/message", method="GET"), _receive, self.send)

        starts = [m for m in self.sent if m["type"] == "http.response.start"]
        self.assertEqual([m["status"] for m in starts], [405, 405])
        self.assertIn((b"allow", b"GET"), starts[0]["headers"])
        self.assertIn((b"allow", b"POST"), starts[1]["headers"])

    async def test_messages_delegated_to_sse_transport(self):
        with patch.object(self.transport._sse, "handle_post_message", AsyncMock()) as handler:
            scope = _scope("/message", method="POST")
            await self.transport(scope, _receive, self.send)

        handler.assert_awaited_once_with(scope, _receive, self.send)


if __name__ == "__main__":
    unittest.main()
