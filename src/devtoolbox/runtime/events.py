"""Terminal input events and the reserved global bindings.

Events are terminal-library agnostic; `ui.terminal` translates
prompt_toolkit key presses and SGR mouse reports into these.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto


class Key(StrEnum):
    CHAR = auto()
    ENTER = auto()
    BACKSPACE = auto()
    TAB = auto()
    UP = auto()
    DOWN = auto()
    LEFT = auto()
    RIGHT = auto()
    ESCAPE = auto()
    OTHER = auto()


class PointerKind(StrEnum):
    DOWN = auto()
    UP = auto()
    MOVE = auto()
    SCROLL = auto()


class MouseButton(StrEnum):
    LEFT = auto()
    MIDDLE = auto()
    RIGHT = auto()
    NONE = auto()


@dataclass(frozen=True, slots=True)
class KeyEvent:
    """One key press. `char` is set for CHAR (and for ctrl chords, the letter)."""

    code: Key
    char: str = ""
    ctrl: bool = False

    @classmethod
    def text(cls, char: str) -> KeyEvent:
        return cls(Key.CHAR, char)

    @classmethod
    def ctrl_key(cls, letter: str) -> KeyEvent:
        return cls(Key.CHAR, letter.lower(), ctrl=True)

    def is_ctrl(self, letter: str) -> bool:
        return self.ctrl and self.code is Key.CHAR and self.char == letter.lower()


@dataclass(frozen=True, slots=True)
class PointerEvent:
    """Mouse event in zero-based terminal cell coordinates."""

    x: int
    y: int
    kind: PointerKind = PointerKind.DOWN
    button: MouseButton = MouseButton.LEFT

    @property
    def is_left_click(self) -> bool:
        return self.kind is PointerKind.DOWN and self.button is MouseButton.LEFT


InputEvent = KeyEvent | PointerEvent


# ─────────────────────────────────────────────────────────────────────────────
# Global Bindings
# ─────────────────────────────────────────────────────────────────────────────


class Binding(StrEnum):
    """Reserved bindings, intercepted before any tool sees the event."""

    QUIT = auto()
    COPY_STATUS = auto()
    NEXT_TOOL = auto()
    SELECT_TAB = auto()


TAB_ROW = 1


def match_binding(event: InputEvent) -> Binding | None:
    """Global binding the event triggers, if any.

    Ctrl+Q quits, Ctrl+C copies the status line, Tab switches to the next
    tool and a left click on the tab row selects a tab.
    """
    match event:
        case KeyEvent(code=Key.TAB):
            return Binding.NEXT_TOOL
        case KeyEvent() if event.is_ctrl("q"):
            return Binding.QUIT
        case KeyEvent() if event.is_ctrl("c"):
            return Binding.COPY_STATUS
        case PointerEvent(y=y) if y == TAB_ROW and event.is_left_click:
            return Binding.SELECT_TAB
        case _:
            return None


def tab_at(x: int, width: int, count: int) -> int:
    """Tab index under column `x` for `count` equal-width tabs across `width` columns."""
    if count <= 0:
        return 0
    tab_width = max(width // count, 1)
    return x // tab_width
