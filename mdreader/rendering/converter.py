"""Markdown to HTML conversion.

Uses markdown-it-py with the GitHub-flavoured extensions readers expect
(tables, strikethrough, task lists, footnotes) and Pygments for fenced code
highlighting. Rendering is a pure function of the source text.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from pathlib import Path

from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from mdreader.core.exceptions import ConversionError

_TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)

# Pygments emits spans with these classes; the stylesheet scopes them under .highlight
_CODE_FORMATTER = HtmlFormatter(nowrap=True)


@dataclass(frozen=True)
class RenderResult:
    """Title and body markup produced from one markdown source."""

    title: str
    body: str


def extract_title(markdown: str, fallback: str) -> str:
    """Return the first level-1 ATX heading, or ``fallback`` when there is none."""
    match = _TITLE_RE.search(markdown)
    if match:
        title = match.group(1).strip()
        if title:
            return title
    return fallback


def _highlight_code(code: str, lang: str, attrs: str) -> str:
    """markdown-it highlight hook: return a complete <pre> block or "" to fall back."""
    words = (lang or "").split()
    if not words:
        return ""
    name = words[0]
    try:
        lexer = get_lexer_by_name(name)
    except ClassNotFound:
        return ""
    highlighted = highlight(code, lexer, _CODE_FORMATTER)
    lang_class = html.escape(name, quote=True)
    return (
        f'<pre class="highlight"><code class="language-{lang_class}">'
        f"{highlighted}</code></pre>"
    )


def create_markdown_parser() -> MarkdownIt:
    """Build the markdown-it parser used for every render."""
    md = MarkdownIt(
        "commonmark",
        {"html": False, "linkify": False, "typographer": False, "highlight": _highlight_code},
    )
    md.enable(["table", "strikethrough"])
    md.use(tasklists_plugin)
    md.use(footnote_plugin)
    return md


class MarkdownRenderer:
    """Callable renderer: ``render(text) -> RenderResult``.

    Args:
        fallback_title: Title used when the document has no level-1 heading
            (the CLI passes the source file stem)
    """

    def __init__(self, fallback_title: str = "Untitled"):
        self.fallback_title = fallback_title
        self._md = create_markdown_parser()

    def render(self, markdown: str) -> RenderResult:
        """Render markdown source.

        Raises:
            ConversionError: If the markdown pipeline fails
        """
        try:
            body = self._md.render(markdown)
        except Exception as e:
            raise ConversionError(f"Markdown conversion failed: {e}") from e
        return RenderResult(title=extract_title(markdown, self.fallback_title), body=body)

    __call__ = render


def render_file(path: Path, renderer: MarkdownRenderer) -> RenderResult:
    """Read ``path`` as UTF-8 and render it.

    Raises:
        ConversionError: If the file cannot be read or rendered
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConversionError(f"Cannot read {path}: {e}", source=path) from e
    try:
        return renderer.render(text)
    except ConversionError as e:
        e.source = path
        raise
    except Exception as e:
        raise ConversionError(f"Rendering {path} failed: {e}", source=path) from e
