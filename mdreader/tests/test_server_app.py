import socket
import time
import unittest
from unittest import mock

import uvicorn
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from mdreader.core.config.watch_config import WatchConfig
from mdreader.core.exceptions import ServerStartError
from mdreader.server.app import (
    NO_STORE_HEADERS,
    LiveReloadServer,
    LocalHostGuardMiddleware,
    create_app,
    local_hosts,
)
from mdreader.services.connection_registry import ConnectionRegistry
from mdreader.services.render_cache import RenderCache

PORT = 8123
PAGE = "<html><body><p>cached page</p></body></html>"


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class LiveReloadAppTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = RenderCache()
        self.cache.set(PAGE)
        self.registry = ConnectionRegistry()
        self.app = create_app(self.cache, self.registry, port=PORT, ws_path="/__ws")
        self.client = TestClient(self.app, base_url=f"http://localhost:{PORT}")

    def tearDown(self) -> None:
        self.client.close()

    def test_serves_cached_page_on_any_path(self) -> None:
        for path in ("/", "/index.html", "/some/deep/path?x=1"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.text, PAGE)
            self.assertIn("text/html", response.headers["content-type"])

    def test_serves_page_for_any_method(self) -> None:
        for method in ("POST", "DELETE", "TRACE", "PROPFIND", "CONNECT", "PURGE"):
            response = self.client.request(method, "/doc")
            self.assertEqual(response.status_code, 200, method)
            self.assertEqual(response.text, PAGE, method)

    def test_socket_path_rejects_plain_requests_of_any_method(self) -> None:
        for method in ("POST", "PROPFIND"):
            response = self.client.request(method, "/__ws")
            self.assertEqual(response.status_code, 400, method)

    def test_page_is_not_cacheable(self) -> None:
        response = self.client.get("/")
        self.assertEqual(response.headers["cache-control"], NO_STORE_HEADERS["Cache-Control"])

    def test_serves_latest_snapshot(self) -> None:
        self.cache.set("<p>second</p>")
        self.assertEqual(self.client.get("/").text, "<p>second</p>")

    def test_loopback_ip_host_allowed(self) -> None:
        response = self.client.get("/", headers={"Host": f"127.0.0.1:{PORT}"})
        self.assertEqual(response.status_code, 200)

    def test_foreign_host_rejected(self) -> None:
        response = self.client.get("/", headers={"Host": f"evil.example:{PORT}"})

        self.assertEqual(response.status_code, 403)
        self.assertNotIn("cached page", response.text)

    def test_wrong_port_rejected(self) -> None:
        response = self.client.get("/", headers={"Host": "localhost:9999"})
        self.assertEqual(response.status_code, 403)

    def test_plain_request_to_socket_path_is_bad_request(self) -> None:
        response = self.client.get("/__ws")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.text, "WebSocket upgrade failed")

    def test_websocket_registers_and_unregisters_channel(self) -> None:
        with self.client.websocket_connect("/__ws"):
            self.assertTrue(_wait_for(lambda: len(self.registry) == 1))

        self.assertTrue(_wait_for(lambda: len(self.registry) == 0))

    def test_websocket_with_foreign_host_refused(self) -> None:
        with self.assertRaises(WebSocketDisconnect):
            with self.client.websocket_connect(
                "/__ws", headers={"Host": f"evil.example:{PORT}"}
            ):
                pass
        self.assertEqual(len(self.registry), 0)

    def test_websocket_on_other_path_not_upgraded(self) -> None:
        with self.assertRaises(WebSocketDisconnect):
            with self.client.websocket_connect("/elsewhere"):
                pass


class LocalHostGuardTests(unittest.IsolatedAsyncioTestCase):
    async def _call(self, headers: list[tuple[bytes, bytes]]) -> tuple[bool, list[dict]]:
        reached = []
        sent: list[dict] = []

        async def app(scope, receive, send) -> None:
            reached.append(scope["path"])

        async def receive() -> dict:
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message: dict) -> None:
            sent.append(message)

        guard = LocalHostGuardMiddleware(app, local_hosts(PORT))
        scope = {"type": "http", "path": "/", "method": "GET", "headers": headers}
        await guard(scope, receive, send)
        return bool(reached), sent

    async def test_missing_host_header_allowed(self) -> None:
        reached, _ = await self._call([])
        self.assertTrue(reached)

    async def test_host_match_is_case_insensitive(self) -> None:
        reached, _ = await self._call([(b"host", f"LOCALHOST:{PORT}".encode())])
        self.assertTrue(reached)

    async def test_mismatch_answers_403(self) -> None:
        reached, sent = await self._call([(b"host", b"attacker.test")])

        self.assertFalse(reached)
        self.assertEqual(sent[0]["type"], "http.response.start")
        self.assertEqual(sent[0]["status"], 403)


class LiveReloadServerTests(unittest.IsolatedAsyncioTestCase):
    async def test_start_and_stop(self) -> None:
        server = LiveReloadServer(RenderCache(PAGE), ConnectionRegistry(), WatchConfig(port=0))

        await server.start()
        try:
            self.assertTrue(server.is_running)
            self.assertGreater(server.port, 0)
            self.assertEqual(server.url, f"http://localhost:{server.port}")
            self.assertEqual(server.ws_url, f"ws://localhost:{server.port}/__ws")
        finally:
            await server.stop()
            await server.stop()

        self.assertFalse(server.is_running)

    async def test_serves_without_installing_signal_handlers(self) -> None:
        server = LiveReloadServer(RenderCache(PAGE), ConnectionRegistry(), WatchConfig(port=0))

        with mock.patch.object(uvicorn.Server, "serve") as serve:
            await server.start()
            try:
                self.assertTrue(server.is_running)
            finally:
                await server.stop()

        serve.assert_not_called()

    async def test_port_in_use_raises(self) -> None:
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        try:
            port = blocker.getsockname()[1]
            server = LiveReloadServer(
                RenderCache(PAGE), ConnectionRegistry(), WatchConfig(port=port)
            )
            with self.assertRaises(ServerStartError):
                await server.start()
            self.assertFalse(server.is_running)
        finally:
            blocker.close()

    async def test_port_unavailable_before_start(self) -> None:
        server = LiveReloadServer(RenderCache(), ConnectionRegistry())
        with self.assertRaises(RuntimeError):
            _ = server.port


if __name__ == "__main__":
    unittest.main()
