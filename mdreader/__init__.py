"""md-reader: render markdown as a styled HTML reading page."""

from .version import __version__

__all__ = ["__version__"]
