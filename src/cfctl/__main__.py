"""Allow ``python -m cfctl`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m cfctl`` behaves identically to the ``cfctl`` console
script.
"""

from __future__ import annotations

from cfctl.cli.app import cli

if __name__ == "__main__":
    cli()
