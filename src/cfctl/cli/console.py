"""CLI console helpers with optional Rich support.

Rich is imported lazily so bootstrap paths (``--help``, ``--version``)
keep working even when it is not installed.
"""

from __future__ import annotations

import sys
from typing import Any

from cfctl.exceptions import DependencyMissingError


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` or raise ``DependencyMissingError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise DependencyMissingError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console() -> Any:
    """Create a Rich console instance targeting stderr."""
    console_class = _load_rich_console_class()
    return console_class(stderr=True)


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with a plain-text fallback."""

    def print(self, *objects: object, **kwargs: Any) -> None:
        """Render with Rich when available, else plain stderr print."""
        try:
            rich_console = get_rich_console()
        except DependencyMissingError:
            print(*objects, file=sys.stderr)
            return
        rich_console.print(*objects, **kwargs)

    def clear(self) -> None:
        """Clear the terminal, or do nothing without Rich."""
        try:
            rich_console = get_rich_console()
        except DependencyMissingError:
            return
        rich_console.clear()


console = _ConsoleProxy()
