"""Convert command module - renders a markdown file to a standalone HTML page."""

import argparse
import tempfile
import time
from pathlib import Path

from loguru import logger

from mdreader.core.config.config import Config
from mdreader.core.exceptions import ConversionError
from mdreader.rendering.converter import MarkdownRenderer, render_file
from mdreader.rendering.template import build_page
from mdreader.utils.opener import Opener, SystemOpener

from ..utils.output import print_error, safe_print


def default_output_path(source: Path, timestamp_ms: int | None = None) -> Path:
    """Temporary-directory path ``md-reader-<stem>-<ms>.html`` for ``source``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return Path(tempfile.gettempdir()) / f"md-reader-{source.stem}-{timestamp_ms}.html"


def render_source_page(source: Path) -> str:
    """Render ``source`` into a complete HTML document without a reload script.

    Raises:
        ConversionError: If the file cannot be read or converted
    """
    result = render_file(source, MarkdownRenderer(fallback_title=source.stem))
    return build_page(result.title, result.body)


def convert_command(
    args: argparse.Namespace,
    config: Config,
    opener: Opener | None = None,
) -> int:
    """Execute the default convert command.

    Args:
        args: Parsed command-line arguments
        config: Pre-validated configuration instance
        opener: Viewer launcher (defaults to the system opener)

    Returns:
        Process exit code
    """
    source: Path = args.file
    try:
        page = render_source_page(source)
    except ConversionError as e:
        print_error(str(e))
        return 1

    output_path: Path = args.output or default_output_path(source)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(page, encoding="utf-8")
    except OSError as e:
        print_error(f"Cannot write {output_path}: {e}")
        return 1

    safe_print(f"→ {output_path}")
    logger.debug(f"Wrote {len(page)} characters to {output_path}")

    if config.watch.open_browser:
        (opener or SystemOpener()).open(str(output_path.resolve()))
    return 0
