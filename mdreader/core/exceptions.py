"""Exception hierarchy for md-reader.

Only FatalStartupError (and its subclasses) aborts a watch session. The
remaining errors are contained where they occur and reported through the
operator log.
"""

from __future__ import annotations

from pathlib import Path


class MdReaderError(Exception):
    """Base class for all md-reader errors."""


class ConversionError(MdReaderError):
    """Markdown source could not be read or rendered."""

    def __init__(self, message: str, source: Path | None = None):
        super().__init__(message)
        self.source = source


class FatalStartupError(MdReaderError):
    """A watch session could not reach the running state."""


class WatchError(FatalStartupError):
    """Filesystem watch registration failed."""


class ServerStartError(FatalStartupError):
    """The live-reload server could not bind or start."""


class TransientRenderError(MdReaderError):
    """A re-render after startup failed; the previous page keeps being served."""


class ChannelError(MdReaderError):
    """Sending to a single viewer channel failed."""


class PdfExportError(MdReaderError):
    """No usable browser was found, or the browser failed to print."""


__all__ = [
    "MdReaderError",
    "ConversionError",
    "FatalStartupError",
    "WatchError",
    "ServerStartError",
    "TransientRenderError",
    "ChannelError",
    "PdfExportError",
]
