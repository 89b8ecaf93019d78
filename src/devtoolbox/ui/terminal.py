"""The real terminal: rich Live output plus prompt_toolkit raw-mode input.

`Terminal` is both the event loop's InputSource and its Surface. Key
presses are read by prompt_toolkit's VT100 parser on the asyncio loop and
translated to `KeyEvent`/`PointerEvent`; SGR mouse reporting is switched on
for the session so tab clicks arrive as `Vt100MouseEvent` key presses.
"""

from __future__ import annotations

import asyncio
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys
from rich.console import Console
from rich.live import Live

from devtoolbox.foundation.errors import StartupError
from devtoolbox.foundation.logging import get_logger
from devtoolbox.io.clipboard import Osc52Clipboard
from devtoolbox.runtime.events import InputEvent, Key, KeyEvent, MouseButton, PointerEvent, PointerKind
from devtoolbox.runtime.registry import ToolRegistry

from .view import compose_frame

log = get_logger("devtoolbox.terminal")

MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1000l\x1b[?1006l"

_SGR_MOUSE = re.compile(r"\x1b\[<(\d+);(\d+);(\d+)([Mm])")

_NAMED_KEYS: dict[str, Key] = {
    Keys.ControlI: Key.TAB,
    Keys.ControlM: Key.ENTER,
    Keys.ControlJ: Key.ENTER,
    Keys.ControlH: Key.BACKSPACE,
    Keys.Up: Key.UP,
    Keys.Down: Key.DOWN,
    Keys.Left: Key.LEFT,
    Keys.Right: Key.RIGHT,
    Keys.Escape: Key.ESCAPE,
}


def translate_key(press: KeyPress) -> InputEvent | None:
    """Map a prompt_toolkit key press to an input event. Unknown presses map to Key.OTHER."""
    key = press.key
    if key == Keys.Vt100MouseEvent:
        return parse_sgr_mouse(press.data)
    if key in _NAMED_KEYS:
        return KeyEvent(_NAMED_KEYS[key])
    if isinstance(key, str) and key.startswith("c-") and len(key) == 3:
        return KeyEvent.ctrl_key(key[2])
    if isinstance(key, str) and len(key) == 1 and key.isprintable():
        return KeyEvent.text(key)
    return KeyEvent(Key.OTHER)


def parse_sgr_mouse(data: str) -> PointerEvent | None:
    """Parse `ESC [ < b ; x ; y M|m` (1-based cells) into a zero-based PointerEvent."""
    m = _SGR_MOUSE.match(data)
    if m is None:
        return None
    code, x, y, final = int(m[1]), int(m[2]) - 1, int(m[3]) - 1, m[4]
    if code & 64:
        return PointerEvent(x, y, PointerKind.SCROLL, MouseButton.NONE)
    button = {0: MouseButton.LEFT, 1: MouseButton.MIDDLE, 2: MouseButton.RIGHT}.get(code & 3, MouseButton.NONE)
    if code & 32:
        kind = PointerKind.MOVE
    else:
        kind = PointerKind.DOWN if final == "M" else PointerKind.UP
    return PointerEvent(x, y, kind, button)


class Terminal:
    """Owns the screen for the duration of `session()`.

    Example:
        >>> terminal = Terminal()
        >>> with terminal.session():
        ...     await EventLoop(registry, terminal, terminal, terminal.clipboard()).run()
    """

    __slots__ = ("_console", "_input", "_live", "_queue")

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()
        self._input: Input | None = None
        self._live: Live | None = None
        self._queue: asyncio.Queue[InputEvent] = asyncio.Queue()

    @property
    def console(self) -> Console:
        return self._console

    @property
    def width(self) -> int:
        return self._console.size.width

    def clipboard(self) -> Osc52Clipboard:
        """Clipboard writing OSC 52 to this terminal."""
        return Osc52Clipboard(self._console.file)

    # ─────────────────────────────────────────────────────────────────
    # Session
    # ─────────────────────────────────────────────────────────────────

    @contextmanager
    def session(self) -> Iterator[Terminal]:
        """Acquire the terminal: raw input, alternate screen, mouse reporting. Restored on exit.

        Must be entered with a running asyncio loop.

        Raises:
            StartupError: stdin is not a terminal or cannot be put in raw mode
        """
        if not sys.stdin.isatty():
            raise StartupError("Dev-Toolbox needs an interactive terminal", hint="Run it from a terminal, not a pipe")
        try:
            self._input = create_input()
        except (OSError, NotImplementedError) as e:
            raise StartupError(f"Cannot acquire terminal: {e}") from e

        with self._input.raw_mode(), self._input.attach(self._on_input_ready):
            live = Live(console=self._console, screen=True, auto_refresh=False, transient=True)
            with live:
                self._live = live
                self._write(MOUSE_ON)
                log.info("terminal acquired", width=self.width)
                try:
                    yield self
                finally:
                    self._write(MOUSE_OFF)
                    self._live = None
        log.info("terminal restored")

    def _write(self, sequence: str) -> None:
        self._console.file.write(sequence)
        self._console.file.flush()

    def _on_input_ready(self) -> None:
        assert self._input is not None
        for press in self._input.read_keys():
            if (event := translate_key(press)) is not None:
                self._queue.put_nowait(event)

    # ─────────────────────────────────────────────────────────────────
    # InputSource / Surface
    # ─────────────────────────────────────────────────────────────────

    async def read(self, timeout: float) -> InputEvent | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except TimeoutError:
            return None

    def draw(self, registry: ToolRegistry, status: str) -> None:
        frame = compose_frame(registry, status)
        if self._live is None:
            self._console.print(frame)
        else:
            self._live.update(frame, refresh=True)
