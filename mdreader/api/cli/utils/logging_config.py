"""loguru sink setup for the md-reader CLI."""

import sys

from loguru import logger

LOG_FORMAT = "<level>{level: <8}</level> | {message}"
DEBUG_LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - {message}"
)


def resolve_log_level(verbose: bool = False, debug: bool = False) -> str:
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    return "WARNING"


def configure_logging(verbose: bool = False, debug: bool = False) -> str:
    """Replace loguru's default sink with a stderr sink at the chosen level.

    Returns:
        The level name that was configured
    """
    level = resolve_log_level(verbose, debug)
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=DEBUG_LOG_FORMAT if debug else LOG_FORMAT,
        colorize=None,
        backtrace=debug,
        diagnose=debug,
    )
    return level
