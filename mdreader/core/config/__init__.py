"""Configuration models for md-reader."""

from .config import Config
from .pdf_config import PdfConfig
from .watch_config import WatchConfig

__all__ = ["Config", "PdfConfig", "WatchConfig"]
