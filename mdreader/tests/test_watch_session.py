import asyncio
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import httpx
import websockets

from mdreader.core.config.watch_config import WatchConfig
from mdreader.core.exceptions import FatalStartupError, WatchError
from mdreader.rendering.converter import RenderResult
from mdreader.services.connection_registry import RELOAD_MESSAGE, ViewerChannel
from mdreader.services.watch_session import (
    FileSettled,
    SessionState,
    ShutdownRequested,
    WatchSession,
)
from mdreader.utils.opener import NullOpener


class _SwitchableRenderer:
    """Echoes the source into a paragraph, or fails while ``fail`` is set."""

    def __init__(self) -> None:
        self.fail = False
        self.calls = 0

    def render(self, markdown: str) -> RenderResult:
        self.calls += 1
        if self.fail:
            raise ValueError("syntax the renderer cannot handle")
        return RenderResult(title="doc", body=f"<p>{markdown}</p>")


class _FakeConnection:
    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed_with: list[int] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with.append(code)


async def _wait_until(predicate, timeout: float = 5.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.02)
    return predicate()


class _SessionTestCase(unittest.IsolatedAsyncioTestCase):
    open_browser = True

    async def asyncSetUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.path = self.root / "doc.md"
        self.path.write_text("# Title\nHello", encoding="utf-8")
        self.config = WatchConfig(port=0, debounce_ms=50, open_browser=self.open_browser)
        self.opener = NullOpener()
        self.session = self._create_session()

    def _create_session(self, **kwargs) -> WatchSession:
        return WatchSession(self.path, self.config, opener=self.opener, **kwargs)

    async def asyncTearDown(self) -> None:
        await self.session.shutdown()
        self.temp_dir.cleanup()


class WatchSessionEndToEndTests(_SessionTestCase):
    async def test_edit_reloads_connected_viewer(self) -> None:
        await self.session.start()
        loop_task = asyncio.create_task(self.session.process_events())

        self.assertEqual(self.session.state, SessionState.RUNNING)
        self.assertEqual(self.opener.opened, [self.session.url])

        base = f"http://127.0.0.1:{self.session.port}"
        ws_url = f"ws://127.0.0.1:{self.session.port}{self.config.ws_path}"

        async with httpx.AsyncClient(base_url=base) as client:
            first = await client.get("/")
            self.assertEqual(first.status_code, 200)
            self.assertIn("Hello", first.text)
            self.assertIn(self.config.ws_path, first.text)

            async with websockets.connect(ws_url) as viewer:
                self.assertTrue(await _wait_until(lambda: len(self.session.registry) == 1))

                self.path.write_text("# Title\nGoodbye", encoding="utf-8")
                message = await asyncio.wait_for(viewer.recv(), timeout=10)
                self.assertEqual(message, RELOAD_MESSAGE)

                # One save settles once: no second reload follows
                with self.assertRaises(asyncio.TimeoutError):
                    await asyncio.wait_for(viewer.recv(), timeout=0.5)
                self.assertEqual(self.session.monitor.settled_events, 1)

                second = await client.get("/")
                self.assertIn("Goodbye", second.text)
                self.assertNotIn("Hello", second.text)

                self.session.request_shutdown("test finished")
                await asyncio.wait_for(loop_task, timeout=10)

        self.assertEqual(self.session.state, SessionState.STOPPED)
        self.assertFalse(self.session.server.is_running)
        self.assertFalse(self.session.monitor.is_watching)
        self.assertEqual(len(self.session.registry), 0)

    async def test_run_until_shutdown_requested(self) -> None:
        started: list[WatchSession] = []
        run_task = asyncio.create_task(self.session.run(on_started=started.append))

        self.assertTrue(
            await _wait_until(lambda: self.session.state is SessionState.RUNNING)
        )
        self.assertEqual(started, [self.session])

        self.session.request_shutdown("test")
        await asyncio.wait_for(run_task, timeout=10)

        self.assertEqual(self.session.state, SessionState.STOPPED)


class WatchSessionRenderTests(_SessionTestCase):
    open_browser = False

    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.renderer = _SwitchableRenderer()
        self.session = self._create_session(renderer=self.renderer)
        await self.session.start()
        self.connection = _FakeConnection()
        self.session.registry.add(ViewerChannel(self.connection))

    async def test_opener_not_called_when_disabled(self) -> None:
        self.assertEqual(self.opener.opened, [])

    async def test_failed_rerender_keeps_page_and_skips_broadcast(self) -> None:
        before = self.session.cache.get()
        version = self.session.cache.version
        self.renderer.fail = True
        self.path.write_text("# Title\nBroken", encoding="utf-8")

        await self.session.dispatch(FileSettled())

        self.assertEqual(self.session.cache.get(), before)
        self.assertEqual(self.session.cache.version, version)
        self.assertEqual(self.connection.sent, [])
        self.assertEqual(self.session.state, SessionState.RUNNING)
        self.assertEqual(self.session.failed_renders, 1)

        self.renderer.fail = False
        await self.session.dispatch(FileSettled())

        self.assertIn("Broken", self.session.cache.get())
        self.assertEqual(self.session.cache.version, version + 1)
        self.assertEqual(self.connection.sent, [RELOAD_MESSAGE])

    async def test_page_carries_reload_script(self) -> None:
        page = self.session.cache.get()

        self.assertIn("<p># Title\nHello</p>", page)
        self.assertIn(f'"{self.config.ws_path}"', page)

    async def test_shutdown_is_idempotent(self) -> None:
        await asyncio.gather(self.session.shutdown(), self.session.shutdown())
        await self.session.shutdown()

        self.assertEqual(self.session.state, SessionState.STOPPED)
        self.assertEqual(self.connection.closed_with, [1001])
        self.assertFalse(self.session.server.is_running)

    async def test_events_ignored_after_stop(self) -> None:
        await self.session.shutdown()
        calls = self.renderer.calls

        await self.session.dispatch(FileSettled())
        await self.session.dispatch(ShutdownRequested("again"))

        self.assertEqual(self.renderer.calls, calls)
        self.assertEqual(self.session.state, SessionState.STOPPED)

    async def test_shutdown_wakes_idle_event_loop(self) -> None:
        loop_task = asyncio.create_task(self.session.process_events())
        await asyncio.sleep(0.05)

        await self.session.shutdown()

        await asyncio.wait_for(loop_task, timeout=5)

    async def test_stats(self) -> None:
        stats = self.session.get_stats()

        self.assertEqual(stats["state"], "running")
        self.assertEqual(stats["cache_version"], 1)
        self.assertEqual(stats["viewers"], 1)


class WatchSessionStartupFailureTests(_SessionTestCase):
    async def test_missing_source_is_fatal(self) -> None:
        self.path.unlink()

        with self.assertRaises(FatalStartupError):
            await self.session.start()

        self.assertEqual(self.session.state, SessionState.STOPPED)
        self.assertFalse(self.session.server.is_running)
        self.assertEqual(self.opener.opened, [])

    async def test_watch_failure_tears_down_server(self) -> None:
        with mock.patch.object(
            self.session.monitor, "start", side_effect=WatchError("no inotify")
        ):
            with self.assertRaises(WatchError):
                await self.session.start()

        self.assertEqual(self.session.state, SessionState.STOPPED)
        self.assertFalse(self.session.server.is_running)
        self.assertEqual(self.opener.opened, [])


if __name__ == "__main__":
    unittest.main()
