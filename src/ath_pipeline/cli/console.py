"""Shared Rich console for the CLI layer and the log handler."""

from __future__ import annotations

from functools import lru_cache

from rich.console import Console


@lru_cache(maxsize=1)
def get_rich_console() -> Console:
    """Return the process-wide Rich console targeting stderr."""
    return Console(stderr=True)


class _ConsoleProxy:
    """Late-binding ``print`` proxy so tests can swap the console."""

    def print(self, *objects: object) -> None:
        get_rich_console().print(*objects)


console = _ConsoleProxy()
