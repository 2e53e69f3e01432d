"""Common CLI argument patterns shared across parsers."""

import argparse


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments common to all commands.

    Args:
        parser: Argument parser to add common arguments to
    """
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )


def add_config_arguments(parser: argparse.ArgumentParser, configs: list[str]) -> None:
    """Add CLI arguments for specified config sections.

    Args:
        parser: Argument parser to add config arguments to
        configs: List of config section names to include
    """
    if "watch" in configs:
        from mdreader.core.config.watch_config import WatchConfig

        WatchConfig.add_cli_arguments(parser)

    if "pdf" in configs:
        from mdreader.core.config.pdf_config import PdfConfig

        PdfConfig.add_cli_arguments(parser)
