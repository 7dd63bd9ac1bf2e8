"""Keyboard-driven, paginated, searchable list selector.

This module holds the **pure** selection state machine: it consumes
abstract :class:`KeyEvent` values and never touches the terminal.  The
raw-mode driver that feeds it real keystrokes and renders its state
lives in :mod:`cfctl.cli.selector_prompt`.

Behaviour is tuned per use site through :class:`SelectorConfig`:

* :data:`USER_SELECTOR` — clamped paging, search, trailing *add new* row.
* :data:`WORKSPACE_SELECTOR` — wrapping pages, search, numeric entry.
* :data:`SCOPE_SELECTOR` — plain list.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from cfctl.exceptions import UserCancelError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Input events
# ---------------------------------------------------------------------------

class KeyKind(Enum):
    """Abstract keys understood by :class:`Selector`."""

    UP = "up"
    DOWN = "down"
    NEXT_PAGE = "next_page"
    PREV_PAGE = "prev_page"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    CHAR = "char"


@dataclass(frozen=True, slots=True)
class KeyEvent:
    """A single decoded keystroke."""

    kind: KeyKind
    char: str = ""
    """The typed character; only meaningful for :attr:`KeyKind.CHAR`."""


_VIM_KEYS: dict[str, KeyKind] = {
    "j": KeyKind.DOWN,
    "k": KeyKind.UP,
    "l": KeyKind.NEXT_PAGE,
    "h": KeyKind.PREV_PAGE,
}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SelectorConfig:
    """Per-use-site selector behaviour."""

    page_size: int = 10
    wrap_pages: bool = False
    """Wrap around at the first/last page instead of clamping."""

    searchable: bool = False
    numeric_entry: bool = False
    """Accept a typed 1-based index followed by Enter."""

    add_new_label: str | None = None
    """When set, a trailing pseudo-row that yields :data:`ADD_NEW`."""


USER_SELECTOR = SelectorConfig(searchable=True, add_new_label="Add new user")
WORKSPACE_SELECTOR = SelectorConfig(
    page_size=15,
    wrap_pages=True,
    searchable=True,
    numeric_entry=True,
)
SCOPE_SELECTOR = SelectorConfig()


class _Sentinel(Enum):
    ADD_NEW = "add_new"


ADD_NEW = _Sentinel.ADD_NEW
"""Returned by :meth:`Selector.handle` when the *add new* row is chosen."""


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class Selector(Generic[T]):
    """Selection state over *items*, driven one :class:`KeyEvent` at a time.

    Parameters
    ----------
    items:
        Candidates in display order.
    label:
        Maps an item to the text shown for it.
    config:
        Variant behaviour; defaults to a plain clamped list.
    search_key:
        Maps an item to the text search mode matches against; defaults
        to *label*.
    """

    def __init__(
        self,
        items: Sequence[T],
        label: Callable[[T], str],
        config: SelectorConfig = SCOPE_SELECTOR,
        *,
        search_key: Callable[[T], str] | None = None,
    ) -> None:
        self._items: list[T] = list(items)
        self._label = label
        self._search_key = search_key or label
        self._config = config

        self.filtered: list[T] = list(self._items)
        self.page: int = 0
        self.cursor: int = 0
        self.search_mode: bool = False
        self.search_term: str = ""
        self.number_buffer: str = ""

    # -- read-only views ---------------------------------------------------

    @property
    def config(self) -> SelectorConfig:
        return self._config

    def label_of(self, item: T) -> str:
        return self._label(item)

    @property
    def row_count(self) -> int:
        """Selectable rows, including the *add new* row when configured."""
        extra = 1 if self._config.add_new_label is not None else 0
        return len(self.filtered) + extra

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.row_count / self._config.page_size))

    def page_rows(self) -> list[str]:
        """Labels of the rows on the current page, top to bottom."""
        start = self.page * self._config.page_size
        end = min(start + self._config.page_size, self.row_count)
        rows: list[str] = []
        for index in range(start, end):
            if index < len(self.filtered):
                rows.append(self._label(self.filtered[index]))
            else:
                rows.append(self._config.add_new_label or "")
        return rows

    # -- dispatch ----------------------------------------------------------

    def handle(self, event: KeyEvent) -> T | _Sentinel | None:
        """Apply *event* and return the selection it completes, if any.

        Returns
        -------
        T | ADD_NEW | None
            The chosen item, :data:`ADD_NEW` for the *add new* row, or
            ``None`` while the selection is still in progress.

        Raises
        ------
        UserCancelError
            When ``q``/``Q`` is pressed outside search mode.
        """
        if self.search_mode:
            self._handle_search(event)
            return None
        return self._handle_normal(event)

    def _handle_search(self, event: KeyEvent) -> None:
        if event.kind is KeyKind.ESCAPE:
            self.search_mode = False
            self.search_term = ""
        elif event.kind is KeyKind.ENTER:
            self.search_mode = False
        elif event.kind is KeyKind.BACKSPACE:
            self.search_term = self.search_term[:-1]
        elif event.kind is KeyKind.CHAR:
            self.search_term += event.char
        self._refilter()
        self.page = 0
        self.cursor = 0

    def _handle_normal(self, event: KeyEvent) -> T | _Sentinel | None:
        kind = event.kind
        if kind is KeyKind.CHAR:
            char = event.char
            if char in ("q", "Q"):
                raise UserCancelError("Selection cancelled.")
            if char == "/" and self._config.searchable:
                self.search_mode = True
                self.search_term = ""
                self._refilter()
                self.page = 0
                self.cursor = 0
                return None
            if char.isdigit() and self._config.numeric_entry:
                self.number_buffer += char
                return None
            if char not in _VIM_KEYS:
                return None
            kind = _VIM_KEYS[char]

        if kind is KeyKind.UP:
            self.cursor = max(0, self.cursor - 1)
        elif kind is KeyKind.DOWN:
            self.cursor = max(0, min(self._rows_on_page() - 1, self.cursor + 1))
        elif kind is KeyKind.NEXT_PAGE:
            self._turn_page(1)
        elif kind is KeyKind.PREV_PAGE:
            self._turn_page(-1)
        elif kind is KeyKind.BACKSPACE:
            self.number_buffer = self.number_buffer[:-1]
        elif kind is KeyKind.ESCAPE:
            self.number_buffer = ""
            if self.search_term:
                self.search_term = ""
                self._refilter()
                self.page = 0
                self.cursor = 0
        elif kind is KeyKind.ENTER:
            return self._select()
        return None

    # -- helpers -----------------------------------------------------------

    def _rows_on_page(self) -> int:
        start = self.page * self._config.page_size
        return max(0, min(self._config.page_size, self.row_count - start))

    def _turn_page(self, step: int) -> None:
        total = self.total_pages
        if self._config.wrap_pages:
            target = (self.page + step) % total
        else:
            target = min(max(self.page + step, 0), total - 1)
        if target != self.page:
            self.page = target
            self.cursor = 0

    def _refilter(self) -> None:
        term = self.search_term.lower()
        if not term:
            self.filtered = list(self._items)
            return
        matches = [
            item for item in self._items
            if term in self._search_key(item).lower()
        ]
        # No match shows everything; the term itself is kept.
        self.filtered = matches if matches else list(self._items)

    def _select(self) -> T | _Sentinel | None:
        if self.number_buffer:
            buffer, self.number_buffer = self.number_buffer, ""
            index = int(buffer) - 1
            if 0 <= index < len(self.filtered):
                return self.filtered[index]
            logger.debug("Discarding out-of-range entry %s", buffer)
            return None

        index = self.page * self._config.page_size + self.cursor
        if index < len(self.filtered):
            return self.filtered[index]
        if self._config.add_new_label is not None and index == len(self.filtered):
            return ADD_NEW
        return None
