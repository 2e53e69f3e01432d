"""Watch session: live-reload lifecycle controller.

One session serves one markdown file. It owns the render cache, the viewer
registry, the HTTP/WebSocket server and the debounced file monitor, and
drives them from a single control loop fed with typed events.

Architecture:
- Startup: first render -> cache -> server -> file monitor -> opener
- Settled file change -> re-render off the loop -> cache swap -> broadcast
- SIGINT/SIGTERM -> ShutdownRequested -> ordered, best-effort teardown
- States: STARTING -> RUNNING -> SHUTTING_DOWN -> STOPPED
"""

from __future__ import annotations

import asyncio
import inspect
import signal
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from mdreader.core.config.watch_config import WatchConfig
from mdreader.core.exceptions import ConversionError, FatalStartupError, TransientRenderError
from mdreader.rendering.converter import MarkdownRenderer, render_file
from mdreader.rendering.template import build_page, build_reload_script
from mdreader.server.app import LiveReloadServer
from mdreader.services.connection_registry import ConnectionRegistry
from mdreader.services.file_monitor import DebouncedFileMonitor
from mdreader.services.render_cache import RenderCache
from mdreader.utils.opener import NullOpener, Opener, SystemOpener


class SessionState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass(frozen=True)
class FileSettled:
    """The watched file changed and has been quiet for the debounce period."""


@dataclass(frozen=True)
class ShutdownRequested:
    """Begin teardown (interrupt signal, caller request, or loop wake-up)."""

    reason: str = "requested"


SessionEvent = FileSettled | ShutdownRequested


class WatchSession:
    """Serves a live-updating rendering of one markdown file."""

    def __init__(
        self,
        source_path: Path | str,
        config: WatchConfig | None = None,
        *,
        renderer: MarkdownRenderer | None = None,
        opener: Opener | None = None,
    ):
        """Initialize a watch session.

        Args:
            source_path: Markdown file to render and watch
            config: Watch configuration (defaults from environment)
            renderer: Object with ``render(text) -> RenderResult``
            opener: Viewer launcher; defaults to the system opener when
                ``config.open_browser`` is set
        """
        self.source_path = Path(source_path).resolve()
        self.config = config or WatchConfig()
        self.renderer = renderer or MarkdownRenderer(fallback_title=self.source_path.stem)
        if opener is None:
            opener = SystemOpener() if self.config.open_browser else NullOpener()
        self.opener = opener

        self.cache = RenderCache()
        self.registry = ConnectionRegistry()
        self.server = LiveReloadServer(self.cache, self.registry, self.config)
        self.monitor = DebouncedFileMonitor(
            self.source_path,
            self._on_settled,
            debounce_seconds=self.config.debounce_seconds,
            join_timeout=self.config.shutdown_timeout,
        )

        self.state = SessionState.STARTING
        self.renders = 0
        self.failed_renders = 0

        self._reload_script = build_reload_script(self.config.ws_path, self.config.reconnect_ms)
        self._events: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._shutdown_task: asyncio.Task | None = None
        self._installed_signals: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, Any] = {}

    @property
    def url(self) -> str:
        return self.server.url

    @property
    def port(self) -> int:
        return self.server.port

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def build_page_markup(self) -> str:
        """Read, render and wrap the source file. Runs in a worker thread."""
        result = render_file(self.source_path, self.renderer)
        return build_page(result.title, result.body, self._reload_script)

    async def _render(self) -> str:
        loop = asyncio.get_running_loop()
        markup = await loop.run_in_executor(None, self.build_page_markup)
        self.renders += 1
        return markup

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bring the session to RUNNING.

        Raises:
            FatalStartupError: If the first render, the server or the watch fails
        """
        if self.state is not SessionState.STARTING:
            return
        self._loop = asyncio.get_running_loop()

        try:
            markup = await self._render()
        except ConversionError as e:
            self.state = SessionState.STOPPED
            raise FatalStartupError(f"Initial render of {self.source_path} failed: {e}") from e
        self.cache.set(markup)

        try:
            await self.server.start()
            self.monitor.start(self._loop)
        except FatalStartupError:
            await self._teardown()
            self.state = SessionState.STOPPED
            raise

        self.state = SessionState.RUNNING
        logger.info(f"Watching {self.source_path} at {self.url}")

        if self.config.open_browser:
            self._open_viewer(self.url)

    def _open_viewer(self, target: str) -> None:
        try:
            self.opener.open(target)
        except Exception as e:
            # Injected openers may not honour the no-raise contract
            logger.warning(f"Could not open viewer for {target}: {e}")

    async def run(self, on_started: Callable[[WatchSession], None] | None = None) -> None:
        """Start, serve until a shutdown request, then tear everything down.

        Args:
            on_started: Called once the session is RUNNING (the CLI prints its
                banner here)

        Raises:
            FatalStartupError: If startup fails
        """
        await self.start()
        if on_started is not None:
            on_started(self)
        self._install_signal_handlers()
        try:
            await self.process_events()
        finally:
            await self.shutdown()

    async def process_events(self) -> None:
        """Consume events until the session is stopped."""
        while self.state is not SessionState.STOPPED:
            event = await self._events.get()
            await self.dispatch(event)

    async def dispatch(self, event: SessionEvent) -> None:
        """Apply one event to the state machine."""
        if self.state is SessionState.STOPPED:
            logger.debug(f"Ignoring {event!r}; session stopped")
            return

        if isinstance(event, ShutdownRequested):
            if self.state is not SessionState.SHUTTING_DOWN:
                logger.info(f"Shutting down ({event.reason})")
            await self.shutdown()
        elif isinstance(event, FileSettled):
            if self.state is SessionState.RUNNING:
                await self._handle_settled()
        else:
            logger.warning(f"Unknown session event: {event!r}")

    async def _handle_settled(self) -> None:
        try:
            markup = await self._render()
        except ConversionError as e:
            self.failed_renders += 1
            error = TransientRenderError(str(e))
            logger.error(f"Re-render failed; still serving the previous version: {error}")
            return

        if self.state is not SessionState.RUNNING:
            return

        # Cache first: a viewer that reloads must already see the new page
        snapshot = self.cache.set(markup)
        delivered = await self.registry.broadcast_reload()
        logger.info(
            f"Re-rendered {self.source_path.name} (v{snapshot.version}); "
            f"reloaded {delivered} viewer(s)"
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def post(self, event: SessionEvent) -> None:
        """Queue an event for the control loop. Safe from any thread."""
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if loop is None or running is loop:
            self._events.put_nowait(event)
        elif not loop.is_closed():
            loop.call_soon_threadsafe(self._events.put_nowait, event)

    def _on_settled(self) -> None:
        self.post(FileSettled())

    def request_shutdown(self, reason: str = "requested") -> None:
        self.post(ShutdownRequested(reason))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Tear the session down. Repeated or concurrent calls share one teardown."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> None:
        self.state = SessionState.SHUTTING_DOWN
        await self._teardown()
        self.state = SessionState.STOPPED
        self._remove_signal_handlers()
        # Wake process_events if it is parked on an empty queue
        self._events.put_nowait(ShutdownRequested("stopped"))
        logger.debug("Watch session stopped")

    async def _teardown(self) -> None:
        steps: list[tuple[str, Callable[[], Any]]] = [
            ("stop file monitor", self.monitor.stop),
            ("cancel debounce timer", self.monitor.cancel_pending),
            ("close viewer channels", self.registry.close_all),
            ("stop server", self.server.stop),
        ]
        for label, step in steps:
            try:
                result = step()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Shutdown step '{label}' failed: {e}")

    def _install_signal_handlers(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
                self._installed_signals.append(sig)
                continue
            except (NotImplementedError, RuntimeError, ValueError):
                pass
            # Event loops without add_signal_handler (Windows)
            try:
                self._previous_handlers[sig] = signal.signal(
                    sig,
                    lambda signum, frame: loop.call_soon_threadsafe(
                        self.request_shutdown, signal.Signals(signum).name
                    ),
                )
            except (ValueError, OSError) as e:
                logger.debug(f"Cannot install handler for {sig.name}: {e}")

    def _remove_signal_handlers(self) -> None:
        loop = self._loop
        for sig in self._installed_signals:
            if loop is not None and not loop.is_closed():
                loop.remove_signal_handler(sig)
        self._installed_signals.clear()
        for sig, previous in self._previous_handlers.items():
            try:
                signal.signal(sig, previous)
            except (ValueError, OSError):
                pass
        self._previous_handlers.clear()

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of session counters for diagnostics."""
        return {
            "state": self.state.value,
            "source": str(self.source_path),
            "cache_version": self.cache.version,
            "viewers": len(self.registry),
            "renders": self.renders,
            "failed_renders": self.failed_renders,
            "raw_events": self.monitor.raw_events,
            "settled_events": self.monitor.settled_events,
        }
