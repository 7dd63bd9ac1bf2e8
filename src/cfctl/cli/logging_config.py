"""Diagnostic logging setup for the CLI.

Log records go to stderr through Rich's handler so they never mix with
command output.  Modules log through ``logging.getLogger(__name__)``;
only this module touches the root logger.
"""

from __future__ import annotations

import logging
import sys

_QUIET_LIBRARIES: tuple[str, ...] = ("httpx", "httpcore", "keyring")


def configure_logging(level: str, *, verbose: bool = False) -> None:
    """Install a single stderr handler on the root logger.

    Parameters
    ----------
    level:
        Level name used when *verbose* is false, e.g. ``"WARNING"``.
    verbose:
        Force ``DEBUG`` regardless of *level*.
    """
    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    try:
        from rich.console import Console
        from rich.logging import RichHandler
    except ModuleNotFoundError:
        handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else level.upper())

    # Transport chatter would echo request details; keep it at INFO or above.
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
