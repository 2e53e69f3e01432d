"""md-reader command-line entry point."""

import argparse
import asyncio
import sys

from loguru import logger

from .commands.convert import convert_command
from .commands.pdf import pdf_command
from .commands.watch import watch_command
from .parsers.reader_parser import create_parser
from .utils.config_factory import create_validated_config
from .utils.logging_config import configure_logging
from .utils.output import print_error
from .utils.validation import validate_markdown_path


def run_command(args: argparse.Namespace) -> int:
    """Validate inputs, build the configuration and dispatch to a command."""
    error = validate_markdown_path(args.file)
    if error:
        print_error(error)
        return 1

    if args.watch and args.pdf is not None:
        print_error("--watch and --pdf cannot be combined")
        return 1

    config, errors = create_validated_config(args)
    if config is None:
        for message in errors:
            print_error(message)
        return 1
    logger.debug(f"Configuration: {config.watch!r}")

    if args.watch:
        try:
            return asyncio.run(watch_command(args, config))
        except KeyboardInterrupt:
            # Interrupt arrived before signal handlers were installed
            return 0
    if args.pdf is not None:
        return pdf_command(args, config)
    return convert_command(args, config)


def main(argv: list[str] | None = None) -> int:
    """Parse ``argv`` and run md-reader, returning the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, debug=args.debug)
    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
