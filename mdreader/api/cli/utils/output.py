"""Console output helpers for md-reader commands."""

import sys


def safe_print(text: str) -> None:
    """Print text, degrading to ASCII when the console cannot encode it."""
    try:
        print(text)
    except UnicodeEncodeError:
        # Console codec cannot represent the arrow or the path
        print(text.encode("ascii", errors="replace").decode("ascii"))


def print_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
