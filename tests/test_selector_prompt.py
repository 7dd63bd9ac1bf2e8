"""Tests for the raw-mode selector driver (cli/selector_prompt.py).

No real terminal is used: prompt_toolkit's input object is replaced by
a MagicMock and the render function by a no-op.

Coverage:
* Key decoding from prompt_toolkit key presses.
* Raw mode is always restored, including on cancel.
* ``run_selector`` loops until the selector yields a choice.
"""

from __future__ import annotations

from collections.abc import Iterable
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from prompt_toolkit.keys import Keys

from cfctl.cli.selector_prompt import RawKeyboard, run_selector, to_key_event
from cfctl.core.selector import (
    USER_SELECTOR,
    WORKSPACE_SELECTOR,
    KeyEvent,
    KeyKind,
    Selector,
)
from cfctl.exceptions import UserCancelError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class ScriptedKeyboard:
    """A key source that replays a fixed list of events."""

    def __init__(self, events: Iterable[KeyEvent]) -> None:
        self._events = list(events)
        self.entered = False
        self.exited = False

    def __enter__(self) -> ScriptedKeyboard:
        self.entered = True
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.exited = True

    def read_key(self) -> KeyEvent:
        return self._events.pop(0)


def _no_render(selector: Selector[Any], title: str) -> None:
    return None


def _press(key: Any) -> SimpleNamespace:
    return SimpleNamespace(key=key, data="")


def _fake_input(batches: list[list[Any]]) -> MagicMock:
    fake = MagicMock()
    fake.read_keys.side_effect = batches + [[]] * 10
    fake.flush_keys.return_value = []
    return fake


# ---------------------------------------------------------------------------
# Key decoding
# ---------------------------------------------------------------------------

class TestToKeyEvent:
    @pytest.mark.parametrize(
        ("key", "kind"),
        [
            (Keys.Up, KeyKind.UP),
            (Keys.Down, KeyKind.DOWN),
            (Keys.Right, KeyKind.NEXT_PAGE),
            (Keys.Left, KeyKind.PREV_PAGE),
            (Keys.ControlM, KeyKind.ENTER),
            (Keys.ControlJ, KeyKind.ENTER),
            (Keys.Escape, KeyKind.ESCAPE),
            (Keys.ControlH, KeyKind.BACKSPACE),
        ],
    )
    def test_named_keys(self, key: Keys, kind: KeyKind) -> None:
        assert to_key_event(key, Keys) == KeyEvent(kind)

    def test_printable_character(self) -> None:
        assert to_key_event("j", Keys) == KeyEvent(KeyKind.CHAR, "j")
        assert to_key_event("/", Keys) == KeyEvent(KeyKind.CHAR, "/")

    def test_control_c_raises_keyboard_interrupt(self) -> None:
        with pytest.raises(KeyboardInterrupt):
            to_key_event(Keys.ControlC, Keys)

    def test_unhandled_keys_are_ignored(self) -> None:
        assert to_key_event(Keys.F1, Keys) is None
        assert to_key_event("\x00", Keys) is None


# ---------------------------------------------------------------------------
# Raw keyboard
# ---------------------------------------------------------------------------

class TestRawKeyboard:
    def test_reads_keys_and_restores_mode(self) -> None:
        fake = _fake_input([[_press("k"), _press(Keys.ControlM)]])
        with patch(
            "cfctl.cli.selector_prompt._import_prompt_toolkit",
            return_value=(lambda **_: fake, Keys),
        ):
            with RawKeyboard(poll_interval=0) as keyboard:
                assert keyboard.read_key() == KeyEvent(KeyKind.CHAR, "k")
                assert keyboard.read_key() == KeyEvent(KeyKind.ENTER)

        fake.raw_mode.return_value.__enter__.assert_called_once()
        fake.raw_mode.return_value.__exit__.assert_called_once()
        fake.close.assert_called_once()

    def test_lone_escape_is_flushed(self) -> None:
        fake = _fake_input([])
        fake.flush_keys.return_value = [_press(Keys.Escape)]
        with patch(
            "cfctl.cli.selector_prompt._import_prompt_toolkit",
            return_value=(lambda **_: fake, Keys),
        ):
            with RawKeyboard(poll_interval=0) as keyboard:
                assert keyboard.read_key() == KeyEvent(KeyKind.ESCAPE)

    def test_mode_restored_when_selection_cancelled(self) -> None:
        fake = _fake_input([[_press("q")]])
        selector = Selector(["a"], str, USER_SELECTOR)
        with patch(
            "cfctl.cli.selector_prompt._import_prompt_toolkit",
            return_value=(lambda **_: fake, Keys),
        ):
            with pytest.raises(UserCancelError):
                run_selector(
                    selector,
                    "Select",
                    keyboard=RawKeyboard(poll_interval=0),
                    render=_no_render,
                )

        fake.raw_mode.return_value.__exit__.assert_called_once()
        fake.close.assert_called_once()

    def test_input_closed_when_raw_mode_fails(self) -> None:
        fake = _fake_input([])
        fake.raw_mode.return_value.__enter__.side_effect = OSError("not a tty")
        keyboard = RawKeyboard(poll_interval=0)
        with patch(
            "cfctl.cli.selector_prompt._import_prompt_toolkit",
            return_value=(lambda **_: fake, Keys),
        ):
            with pytest.raises(OSError):
                with keyboard:
                    pass  # pragma: no cover

        fake.close.assert_called_once()
        with pytest.raises(RuntimeError):
            keyboard.read_key()

    def test_read_outside_context_is_an_error(self) -> None:
        with pytest.raises(RuntimeError):
            RawKeyboard().read_key()


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class TestRunSelector:
    def test_returns_first_completed_choice(self) -> None:
        items = [f"ws-{index}" for index in range(20)]
        selector = Selector(items, str, WORKSPACE_SELECTOR)
        keyboard = ScriptedKeyboard(
            [
                KeyEvent(KeyKind.CHAR, "1"),
                KeyEvent(KeyKind.CHAR, "2"),
                KeyEvent(KeyKind.ENTER),
            ],
        )
        renders: list[int] = []

        result = run_selector(
            selector,
            "Workspaces",
            keyboard=keyboard,
            render=lambda sel, title: renders.append(sel.page),
        )

        assert result == "ws-11"
        assert len(renders) == 3
        assert keyboard.entered and keyboard.exited

    def test_keyboard_released_on_interrupt(self) -> None:
        class InterruptingKeyboard(ScriptedKeyboard):
            def read_key(self) -> KeyEvent:
                raise KeyboardInterrupt

        keyboard = InterruptingKeyboard([])
        with pytest.raises(KeyboardInterrupt):
            run_selector(
                Selector(["a"], str),
                "Select",
                keyboard=keyboard,
                render=_no_render,
            )
        assert keyboard.exited
