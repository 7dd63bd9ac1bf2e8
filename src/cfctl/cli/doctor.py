"""``cfctl doctor`` — environment diagnostics command.

Collects the facts a failed login usually hinges on (keyring backend,
readable configuration tiers, a current environment) and renders them
as a Rich table, or plain text when Rich is unavailable.
"""

from __future__ import annotations

import platform
import sys

from cfctl.cli import exit_codes
from cfctl.cli.console import console
from cfctl.exceptions import CfctlError
from cfctl.infra.config_store import LayeredConfigStore, Tier
from cfctl.infra.keyring_store import KeyringKeyStore
from cfctl.settings import ConfigContext
from cfctl.version import __version__

Check = tuple[str, str, str]

_OK = "[green]OK[/green]"
_WARN = "[yellow]WARN[/yellow]"
_FAIL = "[red]FAIL[/red]"


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _cfctl_version_check() -> Check:
    return "cfctl", __version__, _OK


def _python_version_check() -> Check:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = _OK if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _keyring_check() -> Check:
    """A usable keyring backend is required to encrypt cached passwords."""
    try:
        backend = KeyringKeyStore.backend_name()
    except CfctlError as exc:
        return "keyring", str(exc), _FAIL
    if backend.startswith("keyring.backends.fail."):
        return "keyring", "no backend available", _FAIL
    return "keyring", backend, _OK


def _tier_check(store: LayeredConfigStore, tier: Tier) -> Check:
    label = f"{tier.value} config"
    path = store.path_of(tier)
    if not path.exists():
        return label, f"{path} (missing)", _WARN
    try:
        store.load(tier)
    except CfctlError:
        return label, f"{path} (malformed)", _FAIL
    return label, str(path), _OK


def _current_environment_check(store: LayeredConfigStore) -> Check:
    try:
        current = store.current_environment()
    except CfctlError:
        return "environment", "unreadable", _FAIL
    if current is None:
        return "environment", "not set", _WARN
    return "environment", current, _OK


def collect_checks(context: ConfigContext) -> list[Check]:
    """Run every diagnostic and return ``(label, value, status)`` rows."""
    store = LayeredConfigStore(context)
    return [
        _cfctl_version_check(),
        _python_version_check(),
        _keyring_check(),
        _tier_check(store, Tier.APP),
        _tier_check(store, Tier.USER),
        _current_environment_check(store),
    ]


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    for word in ("FAIL", "WARN", "OK"):
        if word in status:
            return word
    return status


def _print_plain_doctor_table(checks: list[Check]) -> None:
    """Render doctor output without Rich."""
    print("\ncfctl doctor", file=sys.stderr)
    print("=" * 72, file=sys.stderr)
    print(f"{'Component':<14} {'Value':<48} {'Status':<8}", file=sys.stderr)
    print("-" * 72, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<14} {value:<48} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(context: ConfigContext) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check fails (warnings allowed),
        :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    checks = collect_checks(context)
    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
    else:
        table = Table(
            title="cfctl doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=12)
        table.add_column("Value", min_width=20)
        table.add_column("Status", justify="center", min_width=8)
        for label, value, status in checks:
            table.add_row(label, value, status)

        console.print()
        console.print(table)
        console.print()
        if has_failure:
            console.print("[bold red]Some checks failed.[/bold red]")
        else:
            console.print("[bold green]All checks passed.[/bold green]")

    return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS
