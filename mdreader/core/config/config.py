"""Top-level md-reader configuration."""

from typing import Any

from pydantic import BaseModel, Field

from .pdf_config import PdfConfig
from .watch_config import WatchConfig


class Config(BaseModel):
    """Aggregated configuration for a single md-reader invocation."""

    watch: WatchConfig = Field(default_factory=WatchConfig)
    pdf: PdfConfig = Field(default_factory=PdfConfig)

    @classmethod
    def from_sources(cls, args: Any = None) -> "Config":
        """Build a config from environment variables overlaid with CLI arguments.

        Raises:
            pydantic.ValidationError: If any merged value is invalid
        """
        watch_values = WatchConfig.load_from_env()
        pdf_values = PdfConfig.load_from_env()
        if args is not None:
            watch_values.update(WatchConfig.extract_cli_overrides(args))
            pdf_values.update(PdfConfig.extract_cli_overrides(args))
        return cls(watch=WatchConfig(**watch_values), pdf=PdfConfig(**pdf_values))
