"""Best-effort launching of the desktop viewer.

Openers never raise: failing to open a browser must not fail a conversion or
a watch session, so every error is logged and swallowed.
"""

from __future__ import annotations

import subprocess
from typing import Protocol

from loguru import logger

from .platform import IS_MACOS, IS_WINDOWS, is_wsl

WSLPATH_TIMEOUT = 5


class Opener(Protocol):
    """Shows a URL or file in a viewer. Implementations swallow all errors."""

    def open(self, target: str) -> None: ...


class NullOpener:
    """Opener that records targets and launches nothing."""

    def __init__(self) -> None:
        self.opened: list[str] = []

    def open(self, target: str) -> None:
        self.opened.append(target)


def _is_url(target: str) -> bool:
    return target.startswith(("http://", "https://", "file://"))


def to_windows_path(linux_path: str) -> str:
    """Translate a WSL path with ``wslpath -w``.

    Raises:
        subprocess.SubprocessError, OSError: If wslpath is unavailable or fails
    """
    result = subprocess.run(
        ["wslpath", "-w", linux_path],
        capture_output=True,
        text=True,
        timeout=WSLPATH_TIMEOUT,
        check=True,
    )
    return result.stdout.strip()


class SystemOpener:
    """Opens targets with the platform's default handler.

    On WSL the Windows-side default browser is used through ``cmd.exe``; other
    platforms use ``open`` (macOS), ``start`` (Windows) or ``xdg-open``.
    """

    def _launch(self, command: list[str]) -> None:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=not IS_WINDOWS,
        )

    def _open_wsl(self, target: str) -> bool:
        try:
            windows_target = target if _is_url(target) else to_windows_path(target)
            self._launch(["cmd.exe", "/c", "start", "", windows_target])
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"WSL opener failed for {target}: {e}")
            return False

    def open(self, target: str) -> None:
        if is_wsl() and self._open_wsl(target):
            return

        if IS_MACOS:
            command = ["open", target]
        elif IS_WINDOWS:
            command = ["cmd", "/c", "start", "", target]
        else:
            command = ["xdg-open", target]

        try:
            self._launch(command)
            logger.debug(f"Opened {target} with {command[0]}")
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not open {target}: {e}")
