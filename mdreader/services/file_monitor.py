"""Debounced single-file monitor.

A single save can produce several raw notifications (temp-file replace,
multiple flushes, close-after-write). Every raw notification restarts one
quiet-period timer; the settle callback fires only after the file has been
quiet for the whole period.

Architecture:
- watchdog Observer thread watches the file's parent directory
- Handler filters to the target file and hops onto the event loop
- Exactly one asyncio TimerHandle is pending at any instant
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Callable

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from mdreader.core.exceptions import WatchError

# Opened and closed_no_write are excluded: re-rendering reads the file and
# those reads must not count as changes.
CONTENT_EVENT_TYPES = frozenset({"created", "modified", "moved", "deleted", "closed"})


def _resolve(raw_path: str | bytes) -> Path:
    return Path(os.fsdecode(raw_path)).resolve()


class SingleFileEventHandler(FileSystemEventHandler):
    """Forwards content events for one file to the event loop."""

    def __init__(
        self,
        target: Path,
        loop: asyncio.AbstractEventLoop,
        on_change: Callable[[], None],
    ):
        self.target = target
        self.loop = loop
        self._on_change = on_change

    def _matches(self, raw_path: Any) -> bool:
        if not raw_path:
            return False
        try:
            return _resolve(raw_path) == self.target
        except (OSError, ValueError):
            return False

    def on_any_event(self, event: Any) -> None:
        if event.is_directory or event.event_type not in CONTENT_EVENT_TYPES:
            return

        # Atomic saves rename a temp file onto the target, so check both ends
        paths = [event.src_path, getattr(event, "dest_path", None)]
        if not any(self._matches(path) for path in paths):
            return

        if self.loop.is_closed():
            return
        try:
            self.loop.call_soon_threadsafe(self._on_change)
        except RuntimeError:
            # Loop closed between the check and the call
            pass


class DebouncedFileMonitor:
    """Watches one file and calls ``on_settled`` once per burst of changes."""

    def __init__(
        self,
        path: Path | str,
        on_settled: Callable[[], None],
        debounce_seconds: float = 0.15,
        join_timeout: float = 2.0,
    ):
        self.path = Path(path).resolve()
        self.on_settled = on_settled
        self.debounce_seconds = max(0.0, float(debounce_seconds))
        self.join_timeout = join_timeout

        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: Any | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._stopped = False

        self.raw_events = 0
        self.settled_events = 0

    @property
    def has_pending(self) -> bool:
        return self._timer is not None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Register the OS watch.

        Raises:
            WatchError: If the watch cannot be registered
        """
        if self._observer is not None:
            return
        self._loop = loop or asyncio.get_running_loop()
        self._stopped = False

        directory = self.path.parent
        if not directory.is_dir():
            raise WatchError(f"Cannot watch {self.path}: directory {directory} does not exist")

        handler = SingleFileEventHandler(self.path, self._loop, self.notify)
        observer = Observer()
        try:
            observer.schedule(handler, str(directory), recursive=False)
            observer.start()
        except Exception as e:
            try:
                observer.stop()
            except Exception:
                pass
            raise WatchError(f"Cannot watch {self.path}: {e}") from e

        self._observer = observer
        logger.debug(f"Watching {self.path} (debounce {self.debounce_seconds * 1000:.0f}ms)")

    def notify(self) -> None:
        """Record one raw change notification. Runs on the event loop thread."""
        if self._stopped:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self.raw_events += 1
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._stopped:
            return
        self.settled_events += 1
        try:
            self.on_settled()
        except Exception:
            logger.exception(f"Settle handler for {self.path} failed")

    def cancel_pending(self) -> None:
        """Drop the pending settle, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def stop(self) -> None:
        """Stop the observer thread and cancel the timer. Safe to call repeatedly."""
        self._stopped = True
        self.cancel_pending()

        observer, self._observer = self._observer, None
        if observer is None:
            return

        observer.stop()
        try:
            loop = asyncio.get_running_loop()
            await asyncio.wait_for(
                loop.run_in_executor(None, observer.join), timeout=self.join_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Observer thread did not exit within timeout")
        logger.debug(f"Stopped watching {self.path}")
