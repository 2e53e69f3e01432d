"""Registry of open live-reload channels."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Protocol

from loguru import logger

from mdreader.core.exceptions import ChannelError

RELOAD_MESSAGE = "reload"

_channel_ids = itertools.count(1)


class PushConnection(Protocol):
    """Transport handle behind a channel (a Starlette WebSocket in production)."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class ViewerChannel:
    """One open push connection to a viewer tab."""

    def __init__(self, connection: PushConnection, peer: Any = None):
        self.connection = connection
        self.peer = peer
        self.channel_id = next(_channel_ids)
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def mark_closed(self) -> None:
        self._open = False

    async def send(self, message: str) -> None:
        """Send a text frame.

        Raises:
            ChannelError: If the channel is closed or the transport fails
        """
        if not self._open:
            raise ChannelError(f"channel {self.channel_id} is closed")
        try:
            await self.connection.send_text(message)
        except Exception as e:
            self._open = False
            raise ChannelError(f"send to channel {self.channel_id} failed: {e}") from e

    async def close(self, code: int = 1000) -> None:
        """Close the transport once; later calls are no-ops."""
        if not self._open:
            return
        self._open = False
        try:
            await self.connection.close(code=code)
        except Exception as e:
            logger.debug(f"Closing channel {self.channel_id} failed: {e}")

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"ViewerChannel(id={self.channel_id}, peer={self.peer}, {state})"


class ConnectionRegistry:
    """Tracks open viewer channels and fans out reload signals.

    All methods run on the event loop thread; broadcasts iterate a snapshot
    of the membership so concurrent add/remove cannot disturb them.
    """

    def __init__(self) -> None:
        self._channels: set[ViewerChannel] = set()

    def add(self, channel: ViewerChannel) -> None:
        if not channel.is_open:
            return
        self._channels.add(channel)
        logger.debug(f"Viewer connected: {channel} ({len(self._channels)} open)")

    def remove(self, channel: ViewerChannel) -> None:
        if channel in self._channels:
            self._channels.discard(channel)
            logger.debug(f"Viewer disconnected: {channel} ({len(self._channels)} open)")

    def channels(self) -> list[ViewerChannel]:
        return list(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, channel: object) -> bool:
        return channel in self._channels

    async def _deliver(self, channel: ViewerChannel, message: str) -> bool:
        try:
            await channel.send(message)
            return True
        except ChannelError as e:
            logger.warning(f"Dropping viewer channel: {e}")
            channel.mark_closed()
            self.remove(channel)
            return False

    async def broadcast(self, message: str) -> int:
        """Send ``message`` to every open channel; return the number delivered."""
        targets = [channel for channel in self._channels if channel.is_open]
        for stale in self._channels.difference(targets):
            self.remove(stale)
        if not targets:
            return 0
        results = await asyncio.gather(
            *(self._deliver(channel, message) for channel in targets)
        )
        return sum(1 for delivered in results if delivered)

    async def broadcast_reload(self) -> int:
        """Tell every connected viewer to reload the page."""
        return await self.broadcast(RELOAD_MESSAGE)

    async def close_all(self, code: int = 1001) -> None:
        """Close and forget every channel (used on shutdown)."""
        channels = list(self._channels)
        self._channels.clear()
        if channels:
            await asyncio.gather(*(channel.close(code=code) for channel in channels))
