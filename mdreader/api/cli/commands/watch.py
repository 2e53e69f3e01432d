"""Watch command module - serves a live-reloading page until interrupted."""

import argparse

from mdreader.core.config.config import Config
from mdreader.core.exceptions import FatalStartupError
from mdreader.services.watch_session import WatchSession
from mdreader.utils.opener import Opener

from ..utils.output import print_error, safe_print


def _announce(session: WatchSession) -> None:
    safe_print(f"Watching {session.source_path}")
    safe_print(f"→ {session.url}  (Ctrl+C to stop)")


async def watch_command(
    args: argparse.Namespace,
    config: Config,
    opener: Opener | None = None,
) -> int:
    """Execute the watch command.

    Args:
        args: Parsed command-line arguments
        config: Pre-validated configuration instance
        opener: Viewer launcher (defaults per ``config.watch.open_browser``)

    Returns:
        0 after a signal-driven shutdown, 1 if the session could not start
    """
    session = WatchSession(args.file, config.watch, opener=opener)
    try:
        await session.run(on_started=_announce)
    except FatalStartupError as e:
        print_error(str(e))
        return 1
    return 0
