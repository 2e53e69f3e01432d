"""Export targets other than the HTML page."""

from .pdf import export_pdf, find_browser

__all__ = ["export_pdf", "find_browser"]
