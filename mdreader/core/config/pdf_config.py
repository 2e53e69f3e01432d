"""PDF export configuration for md-reader."""

import argparse
import os
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PdfConfig(BaseSettings):
    """Headless browser settings used by ``--pdf``.

    Environment Variables:
        MDREADER_PDF_BROWSER=/usr/bin/chromium
        MDREADER_PDF_TIMEOUT=60
    """

    model_config = SettingsConfigDict(
        env_prefix="MDREADER_PDF_",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    browser: Path | None = Field(
        default=None,
        description="Explicit Chromium-family browser binary (skips discovery)",
    )

    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait for the browser to print the page",
    )

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add PDF-related CLI arguments."""
        parser.add_argument(
            "--pdf",
            nargs="?",
            const="",
            default=None,
            metavar="PATH",
            help="Export to PDF (default: <name>.pdf next to the source file)",
        )

        parser.add_argument(
            "--browser",
            type=Path,
            help="Browser binary used for PDF export (default: auto-detect)",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load PDF config from environment variables."""
        config: dict[str, Any] = {}

        if browser := os.getenv("MDREADER_PDF_BROWSER"):
            config["browser"] = Path(browser)
        if timeout := os.getenv("MDREADER_PDF_TIMEOUT"):
            config["timeout"] = float(timeout)

        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract PDF config overrides from CLI arguments."""
        overrides: dict[str, Any] = {}

        if getattr(args, "browser", None):
            overrides["browser"] = args.browser

        return overrides
