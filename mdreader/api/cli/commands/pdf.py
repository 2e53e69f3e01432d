"""PDF command module - prints the rendered page through a headless browser."""

import argparse
from pathlib import Path

from mdreader.core.config.config import Config
from mdreader.core.exceptions import ConversionError, PdfExportError
from mdreader.export.pdf import export_pdf, find_browser

from ..utils.output import print_error, safe_print
from .convert import render_source_page


def resolve_pdf_path(args: argparse.Namespace) -> Path:
    """``--pdf PATH`` if given, else ``<stem>.pdf`` next to the source."""
    if args.pdf:
        return Path(args.pdf)
    return args.file.with_suffix(".pdf")


def pdf_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the PDF export command.

    Args:
        args: Parsed command-line arguments
        config: Pre-validated configuration instance

    Returns:
        Process exit code
    """
    browser = config.pdf.browser or find_browser()
    if browser is None:
        print_error(
            "No Chrome, Chromium, Edge or Brave installation found for PDF export. "
            "Set MDREADER_PDF_BROWSER or pass --browser."
        )
        return 1
    if not browser.exists():
        print_error(f"Browser not found: {browser}")
        return 1

    try:
        page = render_source_page(args.file)
    except ConversionError as e:
        print_error(str(e))
        return 1

    try:
        pdf_path = export_pdf(page, resolve_pdf_path(args), browser, timeout=config.pdf.timeout)
    except PdfExportError as e:
        print_error(f"PDF export failed: {e}")
        return 1

    safe_print(f"→ {pdf_path}")
    return 0
