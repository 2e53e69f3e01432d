"""Configuration factory for CLI commands.

Merges environment variables and CLI arguments into a validated ``Config``
and reports problems as plain messages instead of raising.
"""

import argparse

from pydantic import ValidationError

from mdreader.core.config.config import Config


def _format_validation_error(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def create_validated_config(
    args: argparse.Namespace,
) -> tuple[Config | None, list[str]]:
    """Create a configuration for the parsed arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        ``(config, [])`` on success, ``(None, errors)`` otherwise
    """
    try:
        config = Config.from_sources(args)
    except ValidationError as e:
        return None, _format_validation_error(e)
    except ValueError as e:
        # Malformed numeric environment variables
        return None, [f"Invalid configuration: {e}"]
    return config, []
