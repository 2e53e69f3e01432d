"""In-memory cache of the currently served page."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class CacheSnapshot:
    markup: str
    version: int
    rendered_at: float


class RenderCache:
    """Holds the last successfully built page.

    Writers replace the whole snapshot in one reference assignment, so a
    reader on any thread sees either the old page or the new one, never a
    mix. There is a single writer (the session's settle handler).
    """

    def __init__(self, initial_markup: str = ""):
        self._snapshot = CacheSnapshot(markup=initial_markup, version=0, rendered_at=time.time())

    def get(self) -> str:
        """Return the current page markup."""
        return self._snapshot.markup

    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def set(self, markup: str) -> CacheSnapshot:
        """Swap in a new page and return the snapshot that now serves it."""
        snapshot = CacheSnapshot(
            markup=markup,
            version=self._snapshot.version + 1,
            rendered_at=time.time(),
        )
        self._snapshot = snapshot
        return snapshot
