"""Input validation for md-reader commands."""

from pathlib import Path

MARKDOWN_SUFFIX = ".md"


def validate_markdown_path(path: Path) -> str | None:
    """Return an error message if ``path`` is not an existing markdown file."""
    if path.suffix != MARKDOWN_SUFFIX:
        return f'"{path}" is not a markdown file ({MARKDOWN_SUFFIX} required)'
    if not path.exists():
        return f'File not found: "{path}"'
    if not path.is_file():
        return f'Not a file: "{path}"'
    return None
