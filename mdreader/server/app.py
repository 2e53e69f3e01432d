"""Live-reload HTTP/WebSocket server.

Serves the cached page on every path, upgrades one reserved path to a push
channel and refuses any request whose Host header is not this server on
loopback (DNS-rebinding protection).

Usage:
    server = LiveReloadServer(cache, registry, WatchConfig())
    await server.start()
    print(server.url)
    ...
    await server.stop()
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Iterable

import uvicorn
from loguru import logger
from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.responses import HTMLResponse, PlainTextResponse
from starlette.routing import Route, WebSocketRoute
from starlette.status import WS_1008_POLICY_VIOLATION
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocket, WebSocketClose

from mdreader.core.config.watch_config import DEFAULT_WS_PATH, WatchConfig
from mdreader.core.exceptions import ServerStartError
from mdreader.services.connection_registry import ConnectionRegistry, ViewerChannel
from mdreader.services.render_cache import RenderCache
from mdreader.utils.platform import IS_WINDOWS

NO_STORE_HEADERS = {"Cache-Control": "no-store, max-age=0"}


def local_hosts(port: int) -> frozenset[str]:
    """Host header values accepted for a server bound on ``port``."""
    return frozenset({f"localhost:{port}", f"127.0.0.1:{port}"})


class LocalHostGuardMiddleware:
    """Reject requests whose Host header names anything but this local server.

    A missing Host header is let through; a present one must match exactly.
    WebSocket handshakes are closed before accept, which ASGI servers answer
    with HTTP 403.
    """

    def __init__(self, app: ASGIApp, allowed_hosts: Iterable[str]) -> None:
        self.app = app
        self.allowed_hosts = frozenset(host.lower() for host in allowed_hosts)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        host = Headers(scope=scope).get("host")
        if host is None or host.lower() in self.allowed_hosts:
            await self.app(scope, receive, send)
            return

        logger.warning(f"Rejected {scope['type']} request for {scope.get('path')} with Host {host!r}")
        if scope["type"] == "websocket":
            await WebSocketClose(code=WS_1008_POLICY_VIOLATION)(scope, receive, send)
        else:
            await PlainTextResponse("Forbidden", status_code=403)(scope, receive, send)


class CachedPageEndpoint:
    """Serves the current cache snapshot for any method and path."""

    def __init__(self, cache: RenderCache) -> None:
        self.cache = cache

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        # Reads whatever snapshot is current; never waits on a render in progress
        response = HTMLResponse(self.cache.get(), headers=NO_STORE_HEADERS)
        await response(scope, receive, send)


class UpgradeFailedEndpoint:
    """Answers plain HTTP requests to the push-channel path."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = PlainTextResponse("WebSocket upgrade failed", status_code=400)
        await response(scope, receive, send)


def create_app(
    cache: RenderCache,
    registry: ConnectionRegistry,
    *,
    port: int,
    ws_path: str = DEFAULT_WS_PATH,
) -> Starlette:
    """Create the Starlette application for one watch session.

    HTTP routes are raw ASGI endpoints, so Starlette applies no method
    restriction: every method gets the page (or the 400 on ``ws_path``).
    """

    async def live_reload_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        channel = ViewerChannel(websocket, peer=websocket.client)
        registry.add(channel)
        try:
            # Clients never send anything meaningful; drain until they go away
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            channel.mark_closed()
            registry.remove(channel)

    routes = [
        WebSocketRoute(ws_path, endpoint=live_reload_socket),
        Route(ws_path, endpoint=UpgradeFailedEndpoint()),
        Route("/{path:path}", endpoint=CachedPageEndpoint(cache)),
    ]
    middleware = [Middleware(LocalHostGuardMiddleware, allowed_hosts=local_hosts(port))]

    return Starlette(routes=routes, middleware=middleware)


class LiveReloadServer:
    """uvicorn-hosted live-reload server bound to loopback.

    The listening socket is bound here rather than by uvicorn so the actual
    port (possibly OS-assigned) is known before the app is built.
    """

    def __init__(
        self,
        cache: RenderCache,
        registry: ConnectionRegistry,
        config: WatchConfig | None = None,
    ):
        self.cache = cache
        self.registry = registry
        self.config = config or WatchConfig()
        self.app: Starlette | None = None

        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task | None = None
        self._port: int | None = None

    @property
    def port(self) -> int:
        if self._port is None:
            raise RuntimeError("Server has not been started")
        return self._port

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def ws_url(self) -> str:
        return f"ws://localhost:{self.port}{self.config.ws_path}"

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _bind_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if not IS_WINDOWS:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            raise ServerStartError(
                f"Cannot bind {self.config.host}:{self.config.port}: {e}"
            ) from e
        return sock

    async def start(self) -> None:
        """Bind and start serving.

        Raises:
            ServerStartError: If the port cannot be bound or uvicorn fails to start
        """
        if self._task is not None:
            return

        sock = self._bind_socket()
        self._socket = sock
        self._port = sock.getsockname()[1]
        self.app = create_app(
            self.cache, self.registry, port=self._port, ws_path=self.config.ws_path
        )

        uvicorn_config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self._port,
            log_level="warning",
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=max(1, int(self.config.shutdown_timeout)),
        )
        server = uvicorn.Server(uvicorn_config)
        self._server = server

        # _serve skips uvicorn's signal capture; the watch session owns SIGINT/SIGTERM
        self._task = asyncio.create_task(server._serve(sockets=[sock]))

        for _ in range(100):  # 5 seconds total
            if server.started:
                break
            if self._task.done():
                exc = None if self._task.cancelled() else self._task.exception()
                self._task = None
                sock.close()
                raise ServerStartError("Live-reload server exited during startup") from exc
            await asyncio.sleep(0.05)

        if not server.started:
            await self.stop()
            raise ServerStartError("Live-reload server failed to start within timeout")

        logger.info(f"Live-reload server listening on {self.url}")

    async def stop(self) -> None:
        """Stop serving. Safe to call repeatedly."""
        task, self._task = self._task, None
        if task is None:
            return

        if self._server is not None:
            self._server.should_exit = True
        try:
            await asyncio.wait_for(task, timeout=self.config.shutdown_timeout + 1.0)
        except asyncio.TimeoutError:
            logger.warning("Live-reload server did not stop within timeout")
        except Exception as e:
            logger.warning(f"Live-reload server stopped with error: {e}")
        finally:
            if self._socket is not None:
                self._socket.close()
                self._socket = None
        logger.debug("Live-reload server stopped")
