"""Tests for the terminal interaction adapter (cli/interaction.py).

``questionary`` is mocked and list choices use a scripted selector
runner — no terminal interaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from cfctl.cli.interaction import TerminalInteraction
from cfctl.core.models import CachedUser, Scope, Workspace
from cfctl.core.selector import KeyEvent, KeyKind, Selector
from cfctl.exceptions import InputError, UserCancelError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _questionary(*answers: str | None) -> MagicMock:
    """A questionary stand-in whose prompts answer in order."""
    module = MagicMock()
    queue = list(answers)

    def _prompt(*args: Any, **kwargs: Any) -> MagicMock:
        question = MagicMock()
        question.ask.return_value = queue.pop(0)
        return question

    module.text.side_effect = _prompt
    module.password.side_effect = _prompt
    return module


def _scripted(events: Iterable[KeyEvent]) -> Any:
    """Selector runner that feeds *events* and returns the first choice."""
    pending = list(events)

    def runner(selector: Selector[Any], title: str) -> Any:
        while pending:
            result = selector.handle(pending.pop(0))
            if result is not None:
                return result
        raise AssertionError("selector did not complete")

    return runner


DOWN = KeyEvent(KeyKind.DOWN)
ENTER = KeyEvent(KeyKind.ENTER)


# ---------------------------------------------------------------------------
# Text prompts
# ---------------------------------------------------------------------------

class TestPrompts:
    @patch("cfctl.cli.interaction._import_questionary")
    def test_ask_credentials(self, mock_import: MagicMock) -> None:
        mock_import.return_value = _questionary(" alice ", "pw")
        assert TerminalInteraction().ask_credentials() == ("alice", "pw")

    @patch("cfctl.cli.interaction._import_questionary")
    def test_token_prompt_is_masked(self, mock_import: MagicMock) -> None:
        module = _questionary("tok")
        mock_import.return_value = module

        assert TerminalInteraction().ask_token() == "tok"
        module.password.assert_called_once()
        module.text.assert_not_called()

    @patch("cfctl.cli.interaction._import_questionary")
    def test_cancelled_prompt_raises(self, mock_import: MagicMock) -> None:
        mock_import.return_value = _questionary(None)
        with pytest.raises(UserCancelError):
            TerminalInteraction().ask_password("alice")

    @patch("cfctl.cli.interaction._import_questionary")
    def test_empty_answer_raises(self, mock_import: MagicMock) -> None:
        mock_import.return_value = _questionary("   ")
        with pytest.raises(InputError):
            TerminalInteraction().ask_token()


# ---------------------------------------------------------------------------
# List choices
# ---------------------------------------------------------------------------

class TestChoices:
    def test_choose_existing_user(self) -> None:
        users = [CachedUser("alice", "E", "T"), CachedUser("bob", "E", "T")]
        ui = TerminalInteraction(selector_runner=_scripted([DOWN, ENTER]))
        assert ui.choose_user(users) == users[1]

    def test_add_new_row_returns_none(self) -> None:
        users = [CachedUser("alice", "E", "T")]
        ui = TerminalInteraction(selector_runner=_scripted([DOWN, ENTER]))
        assert ui.choose_user(users) is None

    def test_choose_scope(self) -> None:
        ui = TerminalInteraction(selector_runner=_scripted([DOWN, ENTER]))
        assert ui.choose_scope() is Scope.WORKSPACE

    def test_choose_workspace_by_number(self) -> None:
        workspaces = [Workspace(f"ws-{i}", f"Space {i}") for i in range(20)]
        ui = TerminalInteraction(
            selector_runner=_scripted(
                [KeyEvent(KeyKind.CHAR, "1"), KeyEvent(KeyKind.CHAR, "8"), ENTER],
            ),
        )
        assert ui.choose_workspace(workspaces) == workspaces[17]

    def test_workspace_search_matches_name(self) -> None:
        workspaces = [Workspace("ws-1", "Alpha"), Workspace("ws-2", "Beta")]
        events = [KeyEvent(KeyKind.CHAR, c) for c in "/bet"] + [ENTER, ENTER]
        ui = TerminalInteraction(selector_runner=_scripted(events))
        assert ui.choose_workspace(workspaces) == workspaces[1]

    def test_workspace_search_ignores_ids(self) -> None:
        workspaces = [Workspace("ws-1", "Alpha"), Workspace("ws-2", "Beta")]
        # "ws-2" matches no name, so the full list stays and the cursor
        # is on the first row.
        events = [KeyEvent(KeyKind.CHAR, c) for c in "/ws-2"] + [ENTER, ENTER]
        ui = TerminalInteraction(selector_runner=_scripted(events))
        assert ui.choose_workspace(workspaces) == workspaces[0]


class TestMessages:
    @patch("cfctl.cli.interaction.console")
    def test_warn_prints_hint(self, mock_console: MagicMock) -> None:
        TerminalInteraction().warn("Token expired", hint="Generate a new one")
        printed = " ".join(str(call.args[0]) for call in mock_console.print.call_args_list)
        assert "Token expired" in printed
        assert "Generate a new one" in printed
