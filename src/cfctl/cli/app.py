"""CLI application entry point and command routing for cfctl.

This module is the **sole error boundary** for the entire application.
It catches :class:`~cfctl.exceptions.CfctlError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core/service
  and infrastructure layers.
* The :class:`~cfctl.settings.ConfigContext` is built once per invocation
  here and passed down explicitly.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import logging
import sys

import pydantic

from cfctl.cli import exit_codes
from cfctl.cli.console import console
from cfctl.exceptions import CfctlError, ConfigError, UserCancelError
from cfctl.settings import ConfigContext
from cfctl.version import __version__

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Supported invocations:
    * ``cfctl login [-u URL]`` — log in to the current environment
    * ``cfctl environments``   — list configured environments
    * ``cfctl doctor``         — environment diagnostics
    * ``cfctl --version``
    """
    parser = argparse.ArgumentParser(
        prog="cfctl",
        description="Command-line client for the cloud control plane.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging on stderr.",
    )

    commands = parser.add_subparsers(dest="command")

    login = commands.add_parser(
        "login",
        help="Log in to the current environment.",
    )
    login.add_argument(
        "-u",
        "--url",
        default=None,
        help="Identity endpoint to use instead of the configured one.",
    )

    commands.add_parser(
        "environments",
        help="List configured environments.",
    )
    commands.add_parser(
        "doctor",
        help="Run environment diagnostics.",
    )
    return parser


def _load_context() -> ConfigContext:
    try:
        return ConfigContext()
    except pydantic.ValidationError as exc:
        raise ConfigError(
            f"Invalid CFCTL_* environment settings: {exc}",
        ) from exc


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_login(context: ConfigContext, url: str | None) -> int:
    """Wire the login service to its real collaborators and run it."""
    from cfctl.cli.interaction import TerminalInteraction
    from cfctl.core.login_service import LoginService
    from cfctl.infra.config_store import LayeredConfigStore
    from cfctl.infra.identity_gateway import HttpIdentityGateway
    from cfctl.infra.keyring_store import KeyringKeyStore
    from cfctl.infra.vault import CredentialVault

    store = LayeredConfigStore(context)
    vault = CredentialVault(context, KeyringKeyStore(), store)
    service = LoginService(
        context,
        store,
        vault,
        TerminalInteraction(),
        HttpIdentityGateway,
    )
    result = service.login(url)
    logger.debug("Login finished for %s (%s)", result.environment, result.kind.value)
    return exit_codes.SUCCESS


def _handle_environments(context: ConfigContext) -> int:
    """Print every configured environment, marking the current one."""
    from cfctl.infra.config_store import LayeredConfigStore

    listings = LayeredConfigStore(context).list()
    if not listings:
        console.print("No environments configured.")
        return exit_codes.SUCCESS

    for entry in listings:
        tiers = ", ".join(entry.tiers)
        if entry.is_current:
            console.print(f"[bold green]> {entry.name}[/bold green] [dim]({tiers})[/dim]")
        else:
            console.print(f"  {entry.name} [dim]({tiers})[/dim]")
    return exit_codes.SUCCESS


def _handle_doctor(context: ConfigContext) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from cfctl.cli.doctor import run_doctor

    return run_doctor(context)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the cfctl CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    context = _load_context()

    from cfctl.cli.logging_config import configure_logging

    configure_logging(context.log_level, verbose=args.verbose)

    if args.command == "login":
        return _handle_login(context, args.url)
    if args.command == "environments":
        return _handle_environments(context)
    return _handle_doctor(context)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except UserCancelError as exc:
        console.print(f"[yellow]Cancelled:[/yellow] {exc}")
        sys.exit(exit_codes.USER_CANCELLED)
    except CfctlError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
