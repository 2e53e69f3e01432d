"""Live-reload HTTP/WebSocket server."""

from .app import LiveReloadServer, LocalHostGuardMiddleware, create_app, local_hosts

__all__ = ["LiveReloadServer", "LocalHostGuardMiddleware", "create_app", "local_hosts"]
