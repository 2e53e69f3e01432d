"""Markdown rendering and page assembly."""

from .converter import MarkdownRenderer, RenderResult, extract_title, render_file
from .template import build_page, build_reload_script

__all__ = [
    "MarkdownRenderer",
    "RenderResult",
    "extract_title",
    "render_file",
    "build_page",
    "build_reload_script",
]
