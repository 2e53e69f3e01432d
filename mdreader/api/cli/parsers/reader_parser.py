"""Argument parser for the md-reader command."""

import argparse
from pathlib import Path

from mdreader.version import __version__

from .common_arguments import add_common_arguments, add_config_arguments

EPILOG = """\
Examples:
  md-reader README.md
  md-reader docs/guide.md --no-open
  md-reader notes.md --output ~/Desktop/notes.html
  md-reader notes.md --watch
  md-reader notes.md --pdf notes.pdf
"""


def create_parser() -> argparse.ArgumentParser:
    """Build the top-level md-reader argument parser."""
    parser = argparse.ArgumentParser(
        prog="md-reader",
        description="Render markdown as a readable HTML page",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "file",
        type=Path,
        help="Markdown file to render (.md)",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Save HTML to a specific path (default: temporary directory)",
    )

    parser.add_argument(
        "--no-open",
        action="store_true",
        help="Convert but don't open in browser",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"md-reader v{__version__}",
    )

    add_common_arguments(parser)
    add_config_arguments(parser, ["watch", "pdf"])

    return parser
