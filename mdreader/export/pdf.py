"""PDF export through a headless Chromium-family browser.

Flow: write the page to a temporary HTML file, run the browser with
``--print-to-pdf``, then always remove the temporary file. On WSL the browser
is usually a Windows binary, so both paths are translated with ``wslpath``.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from loguru import logger

from mdreader.core.exceptions import PdfExportError
from mdreader.utils.opener import to_windows_path
from mdreader.utils.platform import is_wsl

BROWSER_CANDIDATES: tuple[str, ...] = (
    # WSL2: Windows-side browsers
    "/mnt/c/Program Files/Google/Chrome/Application/chrome.exe",
    "/mnt/c/Program Files (x86)/Google/Chrome/Application/chrome.exe",
    "/mnt/c/Program Files/Microsoft/Edge/Application/msedge.exe",
    "/mnt/c/Program Files (x86)/Microsoft/Edge/Application/msedge.exe",
    "/mnt/c/Program Files/BraveSoftware/Brave-Browser/Application/brave.exe",
    # Linux
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/usr/bin/chromium-browser",
    "/usr/bin/chromium",
    "/usr/bin/microsoft-edge",
    # macOS
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
    "/Applications/Brave Browser.app/Contents/MacOS/Brave Browser",
)

# Looked up on PATH when none of the fixed locations exist
BROWSER_COMMANDS: tuple[str, ...] = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "microsoft-edge",
)


def find_browser(
    candidates: tuple[str, ...] = BROWSER_CANDIDATES,
    commands: tuple[str, ...] = BROWSER_COMMANDS,
) -> Path | None:
    """Return the first headless-capable browser found, or None."""
    for candidate in candidates:
        if os.path.exists(candidate):
            return Path(candidate)
    for command in commands:
        found = shutil.which(command)
        if found:
            return Path(found)
    return None


def build_print_command(browser_path: Path, html_arg: str, pdf_arg: str) -> list[str]:
    return [
        str(browser_path),
        "--headless=new",
        "--disable-gpu",
        "--no-sandbox",
        "--disable-extensions",
        "--run-all-compositor-stages-before-draw",
        f"--print-to-pdf={pdf_arg}",
        html_arg,
    ]


def export_pdf(
    html: str,
    pdf_path: Path,
    browser_path: Path,
    timeout: float = 60.0,
) -> Path:
    """Print ``html`` to ``pdf_path`` with the given browser.

    Raises:
        PdfExportError: If the browser cannot be run or exits unsuccessfully
    """
    pdf_path = Path(pdf_path).resolve()
    fd, tmp_name = tempfile.mkstemp(prefix="md-reader-pdf-", suffix=".html")
    tmp_html = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(html)

        try:
            if is_wsl():
                html_arg = to_windows_path(str(tmp_html))
                pdf_arg = to_windows_path(str(pdf_path))
            else:
                html_arg = tmp_html.as_uri()
                pdf_arg = str(pdf_path)
        except (OSError, subprocess.SubprocessError) as e:
            raise PdfExportError(f"Cannot translate paths for the browser: {e}") from e

        command = build_print_command(browser_path, html_arg, pdf_arg)
        logger.debug(f"Printing PDF: {command}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise PdfExportError(f"Browser did not finish within {timeout:.0f}s") from e
        except OSError as e:
            raise PdfExportError(f"Cannot run browser {browser_path}: {e}") from e

        if result.returncode != 0:
            raise PdfExportError(
                f"Browser exited with code {result.returncode}: {result.stderr.strip()}"
            )
        return pdf_path
    finally:
        try:
            tmp_html.unlink()
        except OSError:
            pass
