"""Shared utilities for md-reader CLI commands."""

from .config_factory import create_validated_config
from .logging_config import configure_logging
from .output import print_error, safe_print
from .validation import validate_markdown_path

__all__ = [
    "create_validated_config",
    "configure_logging",
    "print_error",
    "safe_print",
    "validate_markdown_path",
]
