"""Terminal implementation of :class:`~cfctl.core.protocols.LoginInteraction`.

Free-text and masked prompts go through questionary; list choices go
through the raw-mode selector in :mod:`cfctl.cli.selector_prompt`.
Secrets typed by the user are returned to the caller and never echoed
or logged.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from cfctl.cli.console import console
from cfctl.cli.selector_prompt import run_selector
from cfctl.core.models import CachedUser, Scope, Workspace
from cfctl.core.selector import (
    ADD_NEW,
    SCOPE_SELECTOR,
    USER_SELECTOR,
    WORKSPACE_SELECTOR,
    Selector,
)
from cfctl.exceptions import DependencyMissingError, InputError, UserCancelError

_SCOPE_LABELS: dict[Scope, str] = {
    Scope.DOMAIN: "DOMAIN ADMIN",
    Scope.WORKSPACE: "WORKSPACES",
}


def _import_questionary() -> Any:
    """Import questionary lazily for interactive prompts."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise DependencyMissingError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _workspace_label(workspace: Workspace) -> str:
    return f"{workspace.name} ({workspace.id})"


class TerminalInteraction:
    """Prompt the user on the controlling terminal.

    Parameters
    ----------
    selector_runner:
        ``runner(selector, title)`` used for every list choice; tests
        substitute a scripted one.
    """

    def __init__(
        self,
        selector_runner: Callable[[Selector[Any], str], Any] = run_selector,
    ) -> None:
        self._run = selector_runner

    # ------------------------------------------------------------------
    # Text prompts
    # ------------------------------------------------------------------

    @staticmethod
    def _ask(question: Any, what: str) -> str:
        answer: str | None = question.ask()  # None on Ctrl+C / Esc
        if answer is None:
            raise UserCancelError(f"No {what} entered.")
        answer = answer.strip()
        if not answer:
            raise InputError(f"{what.capitalize()} must not be empty.")
        return answer

    def ask_token(self) -> str:
        questionary = _import_questionary()
        return self._ask(questionary.password("Enter your token:"), "token")

    def ask_credentials(self) -> tuple[str, str]:
        questionary = _import_questionary()
        user_id = self._ask(questionary.text("Enter your user ID:"), "user ID")
        password = self._ask(questionary.password("Enter your password:"), "password")
        return user_id, password

    def ask_password(self, user_id: str) -> str:
        questionary = _import_questionary()
        return self._ask(
            questionary.password(f"Enter password for {user_id}:"),
            "password",
        )

    # ------------------------------------------------------------------
    # List choices
    # ------------------------------------------------------------------

    def choose_user(self, users: Sequence[CachedUser]) -> CachedUser | None:
        selector = Selector(users, lambda user: user.user_id, USER_SELECTOR)
        choice = self._run(selector, "Select a user:")
        return None if choice is ADD_NEW else choice

    def choose_scope(self) -> Scope:
        selector = Selector(
            [Scope.DOMAIN, Scope.WORKSPACE],
            lambda scope: _SCOPE_LABELS[scope],
            SCOPE_SELECTOR,
        )
        return self._run(selector, "Select scope:")

    def choose_workspace(self, workspaces: Sequence[Workspace]) -> Workspace:
        selector = Selector(
            workspaces,
            _workspace_label,
            WORKSPACE_SELECTOR,
            search_key=lambda workspace: workspace.name,
        )
        return self._run(selector, "Accessible Workspaces:")

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def info(self, message: str) -> None:
        console.print(f"[green]✓[/green] {message}")

    def warn(self, message: str, *, hint: str | None = None) -> None:
        console.print(f"[yellow]Warning:[/yellow] {message}")
        if hint:
            console.print(f"[dim]Hint:[/dim] {hint}")
