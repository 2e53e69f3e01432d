"""Platform detection shared by the opener and the PDF exporter."""

import os
import sys

IS_WINDOWS = sys.platform == "win32"
IS_MACOS = sys.platform == "darwin"


def is_wsl() -> bool:
    """True when running inside WSL, where the desktop viewer lives on Windows."""
    return bool(os.environ.get("WSL_DISTRO_NAME"))
