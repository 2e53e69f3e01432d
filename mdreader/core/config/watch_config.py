"""Watch-mode configuration for md-reader.

Controls the live-reload server and the debounced file monitor. The listener
is always bound to loopback; only the port is configurable.
"""

import argparse
import os
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOOPBACK_HOST = "127.0.0.1"
DEFAULT_WS_PATH = "/__ws"
DEFAULT_DEBOUNCE_MS = 150
DEFAULT_RECONNECT_MS = 500


class WatchConfig(BaseSettings):
    """Configuration for the live-reload watch session.

    Environment Variables:
        MDREADER_WATCH_PORT=0
        MDREADER_WATCH_DEBOUNCE_MS=150
        MDREADER_WATCH_RECONNECT_MS=500
        MDREADER_WATCH_WS_PATH=/__ws
        MDREADER_WATCH_OPEN_BROWSER=true
    """

    model_config = SettingsConfigDict(
        env_prefix="MDREADER_WATCH_",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Port to listen on (0 lets the OS pick a free port)",
    )

    debounce_ms: int = Field(
        default=DEFAULT_DEBOUNCE_MS,
        ge=0,
        description="Quiet period after the last file change before re-rendering",
    )

    reconnect_ms: int = Field(
        default=DEFAULT_RECONNECT_MS,
        ge=0,
        description="Delay before the browser script reconnects a dropped socket",
    )

    ws_path: str = Field(
        default=DEFAULT_WS_PATH,
        description="Reserved path for the live-reload WebSocket",
    )

    open_browser: bool = Field(
        default=True,
        description="Open the served page in the default viewer on startup",
    )

    shutdown_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Seconds to wait for the observer thread and server on shutdown",
    )

    @field_validator("ws_path")
    def validate_ws_path(cls, value: str) -> str:  # noqa: N805
        """Require an absolute path without a trailing slash."""
        normalized = value.strip()
        if not normalized.startswith("/") or normalized == "/":
            raise ValueError(f"ws_path must be an absolute path such as /__ws; received {value!r}")
        return normalized.rstrip("/")

    @property
    def host(self) -> str:
        return LOOPBACK_HOST

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add watch-related CLI arguments."""
        parser.add_argument(
            "--watch",
            "-w",
            action="store_true",
            help="Serve the page on localhost and reload it whenever the file changes",
        )

        parser.add_argument(
            "--port",
            type=int,
            help="Port for watch mode (default: OS-assigned or MDREADER_WATCH_PORT)",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load watch config from environment variables."""
        config: dict[str, Any] = {}

        if port := os.getenv("MDREADER_WATCH_PORT"):
            config["port"] = int(port)
        if debounce := os.getenv("MDREADER_WATCH_DEBOUNCE_MS"):
            config["debounce_ms"] = int(debounce)
        if reconnect := os.getenv("MDREADER_WATCH_RECONNECT_MS"):
            config["reconnect_ms"] = int(reconnect)
        if ws_path := os.getenv("MDREADER_WATCH_WS_PATH"):
            config["ws_path"] = ws_path

        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract watch config overrides from CLI arguments."""
        overrides: dict[str, Any] = {}

        if getattr(args, "port", None) is not None:
            overrides["port"] = args.port
        if getattr(args, "no_open", False):
            overrides["open_browser"] = False

        return overrides

    def __repr__(self) -> str:
        return (
            f"WatchConfig(port={self.port}, debounce_ms={self.debounce_ms}, "
            f"reconnect_ms={self.reconnect_ms}, ws_path={self.ws_path})"
        )
