"""Terminal driver for :class:`~cfctl.core.selector.Selector`.

This module is responsible for:

* Putting the terminal into raw mode for the lifetime of a selection
  and restoring it on every exit path.
* Translating prompt_toolkit key presses into
  :class:`~cfctl.core.selector.KeyEvent` values.
* Rendering the selector state with Rich after every keystroke.

All selection semantics live in the core selector; nothing here decides
what a key *means* beyond naming it.
"""

from __future__ import annotations

import time
from types import TracebackType
from typing import Any, Protocol, TypeVar

from cfctl.cli.console import console
from cfctl.core.selector import KeyEvent, KeyKind, Selector
from cfctl.exceptions import DependencyMissingError

T = TypeVar("T")

POLL_INTERVAL_SECONDS: float = 0.02


def _import_prompt_toolkit() -> tuple[Any, Any]:
    """Import prompt_toolkit lazily; return ``(create_input, Keys)``."""
    try:
        from prompt_toolkit.input import create_input
        from prompt_toolkit.keys import Keys
    except ModuleNotFoundError as exc:
        raise DependencyMissingError(
            "prompt_toolkit is not installed. Install with: pip install prompt_toolkit",
        ) from exc
    return create_input, Keys


# ---------------------------------------------------------------------------
# Key decoding (pure)
# ---------------------------------------------------------------------------

def to_key_event(key: Any, keys: Any) -> KeyEvent | None:
    """Map a prompt_toolkit key to a :class:`KeyEvent`.

    Parameters
    ----------
    key:
        ``KeyPress.key`` — a :class:`prompt_toolkit.keys.Keys` member or
        the literal character typed.
    keys:
        The ``Keys`` enum itself.

    Returns ``None`` for keys the selector ignores.

    Raises
    ------
    KeyboardInterrupt
        For Ctrl+C; raw mode disables the signal, so it is re-raised here.
    """
    if isinstance(key, keys):
        if key == keys.ControlC:
            raise KeyboardInterrupt
        named = {
            keys.Up: KeyKind.UP,
            keys.Down: KeyKind.DOWN,
            keys.Right: KeyKind.NEXT_PAGE,
            keys.Left: KeyKind.PREV_PAGE,
            keys.ControlM: KeyKind.ENTER,
            keys.ControlJ: KeyKind.ENTER,
            keys.Escape: KeyKind.ESCAPE,
            keys.ControlH: KeyKind.BACKSPACE,
            keys.Backspace: KeyKind.BACKSPACE,
        }
        kind = named.get(key)
        return KeyEvent(kind) if kind is not None else None

    if isinstance(key, str) and len(key) == 1 and key.isprintable():
        return KeyEvent(KeyKind.CHAR, key)
    return None


# ---------------------------------------------------------------------------
# Raw keyboard
# ---------------------------------------------------------------------------

class KeySource(Protocol):
    """Anything that yields key events inside a ``with`` block."""

    def __enter__(self) -> KeySource:
        ...  # pragma: no cover

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        ...  # pragma: no cover

    def read_key(self) -> KeyEvent:
        ...  # pragma: no cover


class RawKeyboard:
    """Read single keystrokes from the terminal in raw mode.

    Usage::

        with RawKeyboard() as keyboard:
            event = keyboard.read_key()

    Cooked mode is restored when the block exits, whether normally,
    through :class:`~cfctl.exceptions.UserCancelError`, or through
    ``KeyboardInterrupt``.
    """

    def __init__(self, poll_interval: float = POLL_INTERVAL_SECONDS) -> None:
        self._poll_interval = poll_interval
        self._input: Any = None
        self._raw: Any = None
        self._keys: Any = None
        self._pending: list[Any] = []

    def __enter__(self) -> RawKeyboard:
        create_input, self._keys = _import_prompt_toolkit()
        self._input = create_input(always_prefer_tty=True)
        try:
            raw = self._input.raw_mode()
            raw.__enter__()
        except BaseException:
            self._input.close()
            self._input = None
            raise
        self._raw = raw
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if self._raw is not None:
                self._raw.__exit__(exc_type, exc, tb)
        finally:
            if self._input is not None:
                self._input.close()
            self._raw = None
            self._input = None
            self._pending = []

    def read_key(self) -> KeyEvent:
        """Block until a key the selector understands is pressed."""
        if self._input is None:
            raise RuntimeError("RawKeyboard must be used as a context manager.")
        while True:
            if not self._pending:
                self._pending = list(self._input.read_keys())
            if not self._pending:
                # A lone ESC stays buffered until flushed.
                self._pending = list(self._input.flush_keys())
            if not self._pending:
                time.sleep(self._poll_interval)
                continue
            press = self._pending.pop(0)
            event = to_key_event(press.key, self._keys)
            if event is not None:
                return event


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _footer(selector: Selector[Any]) -> str:
    config = selector.config
    parts = ["[j/↓]down", "[k/↑]up", "[l/→]next page", "[h/←]prev page"]
    if config.searchable:
        parts.append("[/]search")
    if config.numeric_entry:
        parts.append("[0-9]jump")
    parts.extend(["[Enter]select", "[q]quit"])
    return " ".join(parts)


def render_selector(selector: Selector[Any], title: str) -> None:
    """Redraw *selector* in place."""
    console.clear()
    console.print(f"[bold cyan]{title}[/bold cyan]")
    console.print()

    page_size = selector.config.page_size
    start = selector.page * page_size
    for offset, label in enumerate(selector.page_rows()):
        number = start + offset + 1
        marker = "→" if offset == selector.cursor else " "
        style = "bold" if offset == selector.cursor else None
        console.print(
            f"{marker} {number}: {label}",
            style=style,
            markup=False,
            highlight=False,
        )

    console.print()
    console.print(
        f"[dim]Page {selector.page + 1}/{selector.total_pages}[/dim]",
    )
    if selector.search_mode:
        console.print(f"Search: {selector.search_term}_", markup=False)
    elif selector.search_term:
        console.print(f"Filter: {selector.search_term} (Esc to clear)", markup=False)
    if selector.number_buffer:
        console.print(f"Go to: {selector.number_buffer}", markup=False)
    console.print(f"[dim]{_footer(selector)}[/dim]")


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

def run_selector(
    selector: Selector[T],
    title: str,
    *,
    keyboard: KeySource | None = None,
    render: Any = None,
) -> Any:
    """Drive *selector* until it yields a choice.

    Parameters
    ----------
    selector:
        The state machine to drive.
    title:
        Heading shown above the rows.
    keyboard:
        Key source; defaults to a :class:`RawKeyboard`.
    render:
        ``render(selector, title)`` callable; defaults to
        :func:`render_selector`.

    Returns
    -------
    T | ADD_NEW
        Whatever :meth:`Selector.handle` returned first that was not
        ``None``.

    Raises
    ------
    UserCancelError
        When the user quits with ``q``.
    KeyboardInterrupt
        When the user presses Ctrl+C.
    """
    source: KeySource = keyboard if keyboard is not None else RawKeyboard()
    draw = render if render is not None else render_selector
    with source:
        while True:
            draw(selector, title)
            result = selector.handle(source.read_key())
            if result is not None:
                return result
