"""Clipboard output via the OSC 52 terminal escape.

The terminal emulator owns the system clipboard; writing the escape works
over SSH and needs no platform clipboard binary.
"""

from __future__ import annotations

import base64
from typing import Protocol, TextIO, runtime_checkable


@runtime_checkable
class Clipboard(Protocol):
    def copy(self, text: str) -> None: ...


class Osc52Clipboard:
    """Write `ESC ] 52 ; c ; <base64> BEL` to the terminal output."""

    __slots__ = ("_output",)

    def __init__(self, output: TextIO) -> None:
        self._output = output

    def copy(self, text: str) -> None:
        payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
        self._output.write(f"\x1b]52;c;{payload}\a")
        self._output.flush()


class MemoryClipboard:
    """Keeps copied text in memory. Used when no terminal is attached."""

    __slots__ = ("contents",)

    def __init__(self) -> None:
        self.contents: list[str] = []

    def copy(self, text: str) -> None:
        self.contents.append(text)

    @property
    def last(self) -> str | None:
        return self.contents[-1] if self.contents else None
